from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Cookie, Depends, FastAPI, HTTPException, Query
from fastapi import status as http_status

from project_health.libs.config import Config
from project_health.libs.exceptions import (
    MetricArgumentError,
    MetricNotFoundError,
    NoApiTokenError,
    SchemaMismatchError,
)
from project_health.libs.graphql.graphql_client import GraphQLAuthenticationError, GraphQLClient, GraphQLError
from project_health.libs.metrics import get_metric
from project_health.libs.metrics.common import validate_since
from project_health.utils.helpers import get_graphql_client, get_logger_with_params
from project_health.web.dashboard import DashboardController

LOGGER = get_logger_with_params()

graphql_client: GraphQLClient | None = None


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    global graphql_client

    try:
        LOGGER.info("Application starting up...")
        config = Config(logger=LOGGER)

        try:
            graphql_client = get_graphql_client(config=config, logger=LOGGER)
        except NoApiTokenError:
            # Dashboard requests carry their own token, only the metrics API needs one
            LOGGER.warning("No GitHub token configured, metrics API is disabled")
            graphql_client = GraphQLClient(token="", logger=LOGGER)

        yield

    except Exception:
        LOGGER.exception("Application failed during lifespan management")
        raise

    finally:
        if graphql_client is not None:
            await graphql_client.close()
            graphql_client = None
            LOGGER.debug("GraphQL client closed")

        LOGGER.info("Application shutdown complete.")


FASTAPI_APP: FastAPI = FastAPI(title="project-health", lifespan=lifespan)


def get_client() -> GraphQLClient:
    if graphql_client is None:
        raise HTTPException(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="GraphQL client not initialized",
        )
    return graphql_client


@FASTAPI_APP.get("/healthcheck", operation_id="healthcheck")
def healthcheck() -> dict[str, Any]:
    return {"status": http_status.HTTP_200_OK, "message": "Alive"}


@FASTAPI_APP.get("/dash.json", operation_id="get_dashboard")
async def get_dashboard(
    token: str | None = Cookie(None, alias="id"),
    client: GraphQLClient = Depends(get_client),
) -> dict[str, Any]:
    """Pull requests of the logged-in user and the reviews requested from them.

    The GitHub token is read from the `id` cookie.

    **Errors:**
    - 401: No token cookie, or GitHub rejected the token
    - 502: GitHub API error
    """
    if not token:
        raise HTTPException(status_code=http_status.HTTP_401_UNAUTHORIZED, detail="Not logged in")

    controller = DashboardController(client=client, logger=LOGGER)
    try:
        return await controller.fetch_user_data(token)
    except GraphQLAuthenticationError as ex:
        raise HTTPException(status_code=http_status.HTTP_401_UNAUTHORIZED, detail=str(ex)) from ex
    except GraphQLError as ex:
        LOGGER.error(f"Failed to fetch dashboard data: {ex}")
        raise HTTPException(status_code=http_status.HTTP_502_BAD_GATEWAY, detail=str(ex)) from ex


@FASTAPI_APP.get("/api/metrics/{metric}", operation_id="get_metric")
async def get_metric_result(
    metric: str,
    org: str = Query(..., description="GitHub org to measure"),
    repo: str | None = Query(None, description="Repository name or owner/name"),
    since: str | None = Query(None, description="Only measure activity since this ISO-8601 date"),
    raw: bool = Query(False, description="Include the raw data of the metric"),
    client: GraphQLClient = Depends(get_client),
) -> dict[str, Any]:
    """Compute a repository health metric.

    **Metrics:** `review-coverage`, `review-latency`, `issue-counts`

    **Return Structure:**
    ```json
    {
      "metric": "review-coverage",
      "summary": "There are 5 commits of which 3 are reviewed.\\nReview coverage is 60%.",
      "raw": [...]
    }
    ```

    **Errors:**
    - 400: `since` is not an ISO-8601 date
    - 404: Unknown metric
    - 500: Unexpected response shape from GitHub
    - 502: GitHub API error
    - 503: No GitHub token configured
    """
    try:
        metric_function = get_metric(metric)
    except MetricNotFoundError as ex:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(ex)) from ex

    try:
        since = validate_since(since)
    except MetricArgumentError as ex:
        raise HTTPException(status_code=http_status.HTTP_400_BAD_REQUEST, detail=str(ex)) from ex

    if not client.token:
        raise HTTPException(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No GitHub token configured",
        )

    try:
        result = await metric_function(client, org=org, repo=repo, since=since)
    except SchemaMismatchError as ex:
        LOGGER.error(f"Metric {metric} for {org} failed: {ex}")
        raise HTTPException(status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(ex)) from ex
    except GraphQLError as ex:
        LOGGER.error(f"Metric {metric} for {org} failed: {ex}")
        raise HTTPException(status_code=http_status.HTTP_502_BAD_GATEWAY, detail=str(ex)) from ex

    response: dict[str, Any] = {"metric": metric, "summary": result.summary()}
    if raw:
        response["raw"] = result.raw_data()
    return response
