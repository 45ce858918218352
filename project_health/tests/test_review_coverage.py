"""Tests for the review coverage metric."""

import pytest

from project_health.libs.exceptions import SchemaMismatchError
from project_health.libs.graphql.graphql_client import GraphQLError
from project_health.libs.metrics.review_coverage import (
    Commit,
    ReviewCoverageResult,
    ReviewedCommitSet,
    get_default_branch_commits,
    get_full_commits_for_pr,
    get_pr_commits_for_repo,
    get_review_coverage,
)
from project_health.tests.helpers import (
    FakeGraphQLClient,
    by_pr_id,
    by_repo,
    commit,
    history_response,
    org_repos_response,
    paginated,
    pull_request,
    pull_request_commits_response,
    pull_requests_response,
    review,
)


@pytest.fixture
def coverage_client() -> FakeGraphQLClient:
    """Reviewed PR with merge commit M and commits A, B; unreviewed PR with C; branch A B C M D."""
    reviewed_pr = pull_request("PR_1", [commit("A"), commit("B")], reviews=[review()], merge_commit=commit("M"))
    unreviewed_pr = pull_request("PR_2", [commit("C")])
    return FakeGraphQLClient({
        "RepoPRsCommits": by_repo({"org/repo": paginated([[reviewed_pr, unreviewed_pr]], pull_requests_response)}),
        "RepoCommits": by_repo({
            "org/repo": paginated([[commit("A"), commit("B"), commit("C")], [commit("M"), commit("D")]], history_response)
        }),
    })


class TestReviewedCommitSet:
    def test_idempotent_insertion(self):
        reviewed = ReviewedCommitSet()
        reviewed.add("abc")
        reviewed.add("abc")
        reviewed.add(Commit(oid="abc", committed_date="2017-09-01T10:00:00Z"))

        assert len(reviewed) == 1
        assert "abc" in reviewed

    def test_update(self):
        reviewed = ReviewedCommitSet(["a"])
        reviewed.update([Commit("b", "2017-09-01T10:00:00Z"), "a"])

        assert sorted(reviewed) == ["a", "b"]


class TestReviewCoverageResult:
    def test_zero_commits_reports_no_data(self):
        result = ReviewCoverageResult([], ReviewedCommitSet())

        assert result.coverage() is None
        assert result.num_reviewed() == 0
        assert result.summary() == "There are 0 commits of which 0 are reviewed.\nReview coverage is no data."
        assert result.raw_data() == []

    def test_reviewed_flag_computed_at_construction(self):
        reviewed = ReviewedCommitSet(["a"])
        result = ReviewCoverageResult([Commit("a", "d1"), Commit("b", "d2")], reviewed)
        reviewed.add("b")

        assert [commit.reviewed for commit in result.commits] == [True, False]

    def test_coverage_rounds_to_nearest_integer(self):
        commits = [Commit(oid, "2017-09-01T10:00:00Z") for oid in "abc"]
        result = ReviewCoverageResult(commits, ReviewedCommitSet(["a", "b"]))

        assert result.coverage() == 67
        assert result.summary().endswith("Review coverage is 67%.")

    @pytest.mark.parametrize(
        "num_commits, num_reviewed, expected",
        [(8, 1, 13), (8, 5, 63), (40, 1, 3)],
    )
    def test_coverage_rounds_halves_up(self, num_commits, num_reviewed, expected):
        commits = [Commit(f"c{index}", "2017-09-01T10:00:00Z") for index in range(num_commits)]
        reviewed = ReviewedCommitSet(commit.oid for commit in commits[:num_reviewed])

        assert ReviewCoverageResult(commits, reviewed).coverage() == expected

    def test_raw_data(self):
        result = ReviewCoverageResult([Commit("a", "2017-09-01T10:00:00Z")], ReviewedCommitSet(["a"]))

        assert result.raw_data() == [{"oid": "a", "committedDate": "2017-09-01T10:00:00Z", "reviewed": True}]


@pytest.mark.asyncio
async def test_review_coverage_marks_reviewed_commits(coverage_client):
    result = await get_review_coverage(coverage_client, org="org", repo="repo")

    reviewed = {item.commit.oid: item.reviewed for item in result.commits}
    assert reviewed == {"A": True, "B": True, "C": False, "M": True, "D": False}
    assert [item.commit.oid for item in result.commits] == ["A", "B", "C", "M", "D"]
    assert result.num_reviewed() == 3
    assert result.summary() == "There are 5 commits of which 3 are reviewed.\nReview coverage is 60%."


@pytest.mark.asyncio
async def test_review_coverage_passes_since(coverage_client):
    await get_review_coverage(coverage_client, org="org", repo="repo", since="2017-01-01T00:00:00Z")

    assert all(call["since"] == "2017-01-01T00:00:00Z" for call in coverage_client.calls_for("RepoCommits"))


@pytest.mark.asyncio
async def test_pending_and_dismissed_reviews_do_not_count():
    pr = pull_request("PR_1", [commit("A")], reviews=[review("PENDING"), review("DISMISSED")])
    client = FakeGraphQLClient({"RepoPRsCommits": paginated([[pr]], pull_requests_response)})

    reviewed = await get_pr_commits_for_repo(client, "org", "repo")

    assert len(reviewed) == 0


@pytest.mark.asyncio
async def test_nested_commit_pagination():
    """Test a PR with more commits triggers exactly one nested fetch keyed by its id."""
    pr = pull_request(
        "PR_big",
        [commit("A"), commit("B")],
        reviews=[review()],
        merge_commit=commit("M"),
        more_commits=True,
    )
    small_pr = pull_request("PR_small", [commit("E")], reviews=[review("COMMENTED")])
    client = FakeGraphQLClient({
        "RepoPRsCommits": paginated([[pr], [small_pr]], pull_requests_response),
        "PullRequestCommits": by_pr_id({
            "PR_big": paginated(
                [[commit("A"), commit("B"), commit("C")], [commit("D")]],
                pull_request_commits_response,
            )
        }),
    })

    reviewed = await get_pr_commits_for_repo(client, "org", "repo")

    assert sorted(reviewed) == ["A", "B", "C", "D", "E", "M"]
    nested_calls = client.calls_for("PullRequestCommits")
    assert [call["id"] for call in nested_calls] == ["PR_big", "PR_big"]
    assert "cursor" not in nested_calls[0]
    assert nested_calls[1]["cursor"] == "cursor-0"


@pytest.mark.asyncio
async def test_full_commits_for_pr_excludes_merge_commit():
    client = FakeGraphQLClient({
        "PullRequestCommits": paginated([[commit("A")]], pull_request_commits_response),
    })

    commits = await get_full_commits_for_pr(client, "PR_1")

    assert commits == [Commit(oid="A", committed_date="2017-09-01T10:00:00Z")]


@pytest.mark.asyncio
async def test_full_commits_for_non_pull_request_node():
    client = FakeGraphQLClient({"PullRequestCommits": lambda variables: {"node": {"__typename": "Issue"}}})

    assert await get_full_commits_for_pr(client, "I_1") == []
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_missing_repository_has_no_commits():
    client = FakeGraphQLClient({
        "RepoPRsCommits": by_repo({}),
        "RepoCommits": by_repo({}),
    })

    result = await get_review_coverage(client, org="org", repo="missing")

    assert result.commits == ()
    assert "no data" in result.summary()


@pytest.mark.asyncio
async def test_empty_repository_without_default_branch():
    client = FakeGraphQLClient({"RepoCommits": lambda variables: {"repository": {"defaultBranchRef": None}}})

    assert await get_default_branch_commits(client, "org", "empty") == []


@pytest.mark.asyncio
async def test_default_branch_not_a_commit_raises():
    client = FakeGraphQLClient({
        "RepoCommits": lambda variables: {"repository": {"defaultBranchRef": {"target": {"__typename": "Tree"}}}}
    })

    with pytest.raises(SchemaMismatchError, match="Commit"):
        await get_default_branch_commits(client, "org", "repo")


@pytest.mark.asyncio
async def test_org_wide_coverage_accumulates_repositories():
    client = FakeGraphQLClient({
        "OrgRepos": paginated(
            [[{"owner": {"login": "org"}, "name": "one"}], [{"owner": {"login": "org"}, "name": "two"}]],
            org_repos_response,
        ),
        "RepoPRsCommits": by_repo({
            "org/one": paginated([[pull_request("PR_1", [commit("A")], reviews=[review()])]], pull_requests_response),
            "org/two": paginated([[pull_request("PR_2", [commit("B")])]], pull_requests_response),
        }),
        "RepoCommits": by_repo({
            "org/one": paginated([[commit("A"), commit("X")]], history_response),
            "org/two": paginated([[commit("B")]], history_response),
        }),
    })

    result = await get_review_coverage(client, org="org")

    assert [(item.commit.oid, item.reviewed) for item in result.commits] == [("A", True), ("X", False), ("B", False)]
    assert result.coverage() == 33


@pytest.mark.asyncio
async def test_query_error_abandons_computation():
    def failing(variables):
        raise GraphQLError("GraphQL query failed: boom")

    client = FakeGraphQLClient({"RepoPRsCommits": failing})

    with pytest.raises(GraphQLError):
        await get_review_coverage(client, org="org", repo="repo")
