"""Pydantic models describing oramem configuration and tool requests."""
