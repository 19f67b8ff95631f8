"""MCP client node: connect to MCP servers and expose their tools, prompts and resources."""

__version__ = "1.0.0"
