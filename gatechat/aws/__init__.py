"""
AWS integrations layer.
"""
from gatechat.aws.client import get_aws_client

__all__ = [
    "get_aws_client",
]
