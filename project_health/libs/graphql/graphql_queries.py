"""GraphQL documents issued against the GitHub API.

Every paginated document declares a `$cursor: String` variable consumed by
`PageCursorFetcher`.
"""

from __future__ import annotations

USER_FRAGMENT = """
fragment UserFields on User {
    avatarUrl
    login
    resourcePath
    url
}
"""

COMMIT_FRAGMENT = """
fragment CommitFields on Commit {
    oid
    committedDate
}
"""

FULL_PULL_REQUEST_FRAGMENT = """
fragment FullPullRequest on PullRequest {
    author {
        __typename
        ...UserFields
    }
    title
    repository {
        nameWithOwner
    }
    state
    createdAt
    lastEditedAt
    url
    number
    reviews(last: 10) {
        totalCount
        nodes {
            state
            createdAt
            author {
                __typename
                ...UserFields
            }
        }
    }
    reviewRequests(last: 2) {
        totalCount
        nodes {
            requestedReviewer {
                __typename
                ... on User {
                    ...UserFields
                }
            }
        }
    }
    commits(last: 1) {
        nodes {
            commit {
                status {
                    contexts {
                        id
                        context
                        state
                        createdAt
                    }
                    state
                }
            }
        }
    }
}
"""

# Commits on the default branch, optionally bounded by date.
REPO_COMMITS_QUERY = f"""
query RepoCommits($owner: String!, $name: String!, $cursor: String, $since: GitTimestamp) {{
    repository(owner: $owner, name: $name) {{
        defaultBranchRef {{
            target {{
                __typename
                ... on Commit {{
                    history(first: 100, after: $cursor, since: $since) {{
                        pageInfo {{
                            endCursor
                            hasNextPage
                        }}
                        nodes {{
                            ...CommitFields
                        }}
                    }}
                }}
            }}
        }}
    }}
}}
{COMMIT_FRAGMENT}
"""

# Pull requests of a repository with their first 10 commits, flagging whether more exist.
REPO_PRS_COMMITS_QUERY = f"""
query RepoPRsCommits($owner: String!, $name: String!, $cursor: String) {{
    repository(owner: $owner, name: $name) {{
        pullRequests(first: 100, after: $cursor) {{
            pageInfo {{
                endCursor
                hasNextPage
            }}
            nodes {{
                author {{
                    login
                }}
                createdAt
                id
                reviews(first: 20, states: [APPROVED, CHANGES_REQUESTED, COMMENTED]) {{
                    nodes {{
                        author {{
                            login
                        }}
                        state
                        submittedAt
                    }}
                }}
                mergeCommit {{
                    ...CommitFields
                }}
                commits(first: 10) {{
                    pageInfo {{
                        hasNextPage
                    }}
                    nodes {{
                        commit {{
                            ...CommitFields
                        }}
                    }}
                }}
            }}
        }}
    }}
}}
{COMMIT_FRAGMENT}
"""

# Every commit of one pull request. The merge commit is not part of this list.
PULL_REQUEST_COMMITS_QUERY = f"""
query PullRequestCommits($id: ID!, $cursor: String) {{
    node(id: $id) {{
        __typename
        ... on PullRequest {{
            commits(first: 100, after: $cursor) {{
                pageInfo {{
                    endCursor
                    hasNextPage
                }}
                nodes {{
                    commit {{
                        ...CommitFields
                    }}
                }}
            }}
        }}
    }}
}}
{COMMIT_FRAGMENT}
"""

ORG_REPOS_QUERY = """
query OrgRepos($login: String!, $cursor: String) {
    organization(login: $login) {
        repositories(first: 100, after: $cursor) {
            pageInfo {
                endCursor
                hasNextPage
            }
            nodes {
                owner {
                    login
                }
                name
            }
        }
    }
}
"""

REPO_ISSUES_QUERY = """
query RepoIssues($owner: String!, $name: String!, $cursor: String) {
    repository(owner: $owner, name: $name) {
        issues(first: 100, after: $cursor) {
            pageInfo {
                endCursor
                hasNextPage
            }
            nodes {
                createdAt
                closedAt
                state
            }
        }
    }
}
"""

REPO_PRS_REVIEWS_QUERY = """
query RepoPRsReviews($owner: String!, $name: String!, $cursor: String) {
    repository(owner: $owner, name: $name) {
        pullRequests(first: 100, after: $cursor) {
            pageInfo {
                endCursor
                hasNextPage
            }
            nodes {
                url
                createdAt
                author {
                    login
                }
                reviews(first: 20, states: [APPROVED, CHANGES_REQUESTED, COMMENTED]) {
                    nodes {
                        author {
                            login
                        }
                        state
                        createdAt
                        submittedAt
                    }
                }
            }
        }
    }
}
"""

VIEWER_LOGIN_QUERY = """
query ViewerLogin {
    viewer {
        login
    }
}
"""

VIEWER_PULL_REQUESTS_QUERY = f"""
query ViewerPullRequests($login: String!, $query: String!) {{
    user(login: $login) {{
        pullRequests(last: 10, states: [OPEN]) {{
            nodes {{
                ...FullPullRequest
            }}
        }}
    }}
    incomingReviews: search(type: ISSUE, query: $query, last: 10) {{
        nodes {{
            __typename
            ... on PullRequest {{
                ...FullPullRequest
            }}
        }}
    }}
    rateLimit {{
        cost
        limit
        remaining
        resetAt
        nodeCount
    }}
}}
{FULL_PULL_REQUEST_FRAGMENT}
{USER_FRAGMENT}
"""

RATE_LIMIT_QUERY = """
query RateLimit {
    rateLimit {
        limit
        remaining
        resetAt
        cost
    }
}
"""
