"""Allow ``python -m wp_mcp_gateway``."""

from .cli import main

if __name__ == "__main__":
    main()
