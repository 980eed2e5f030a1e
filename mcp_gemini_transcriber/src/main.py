from dotenv import load_dotenv

load_dotenv()

from prometheus_client import start_http_server

from config import settings
from mcp_instance import mcp
import tools  # noqa: F401  registers the transcription tools


def main() -> None:
    if settings.metrics_port > 0:
        start_http_server(settings.metrics_port)

    if settings.mcp_transport == "stdio":
        mcp.run(transport="stdio")
        return

    mcp.run(
        transport=settings.mcp_transport,
        host=settings.host,
        port=settings.port,
        stateless_http=True
    )


if __name__ == "__main__":
    main()
