"""Module entry point.

Enables running the server via: python -m todo_mcp
"""

from todo_mcp.server import main

if __name__ == "__main__":
    main()
