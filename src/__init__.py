"""CloudFormation VPC + EC2 template toolkit.

Validate, render, draw and explain the bundled CloudFormation template.
"""

from .server import main, mcp

__all__ = ["main", "mcp"]
