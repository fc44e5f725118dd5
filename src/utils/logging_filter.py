import logging


class HealthCheckFilter(logging.Filter):
    """
    Drops uvicorn access log lines for the health endpoint.

    Attached to the `uvicorn.access` logger from the app lifespan.
    """

    def __init__(self, path: str = "/health"):
        super().__init__()
        self.path = path

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        # uvicorn passes (client_addr, method, path, http_version, status_code)
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            path = args[2]
            if isinstance(path, str) and path.split("?")[0] == self.path:
                return False
        request_line = getattr(record, "request_line", "")
        if isinstance(request_line, str) and f" {self.path} " in request_line:
            return False
        return True
