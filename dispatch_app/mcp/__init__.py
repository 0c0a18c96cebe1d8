"""
MCP (Model Context Protocol) Server Package

Exposes task, dispatch and template operations as tools for agents.
All tools validate user ownership through the service layer.
"""
