import uvicorn

from project_health.libs.config import Config

_config = Config()
_root_config = _config.root_data
_ip_bind = _root_config.get("ip-bind", "0.0.0.0")
_port = _root_config.get("port", 8080)
_max_workers = _root_config.get("max-workers", 1)


if __name__ == "__main__":
    # Uvicorn handles HTTP request logs, simple-logger handles application logs
    uvicorn.run(
        "project_health.app:FASTAPI_APP",
        host=_ip_bind,
        port=int(_port),
        workers=int(_max_workers),
        reload=False,
    )
