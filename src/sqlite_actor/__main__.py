"""Entry point for the sqlite-actor MCP server."""

from sqlite_actor.server import create_server


def main() -> None:
    """Run the sqlite-actor MCP server."""
    server = create_server()
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
