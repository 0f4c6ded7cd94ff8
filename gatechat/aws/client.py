"""
AWS client factory - centralized boto3 client creation.
"""
import boto3
from typing import Optional
from gatechat.core.config import settings


def get_aws_client(service_name: str, region_name: Optional[str] = None):
    """
    Create and return a boto3 client for an AWS service.

    Args:
        service_name: AWS service name (e.g. 's3')
        region_name: AWS region name (defaults to AWS_REGION from settings)

    Returns:
        Boto3 client for the specified service
    """
    region = region_name or settings.AWS_REGION
    return boto3.client(service_name, region_name=region)
