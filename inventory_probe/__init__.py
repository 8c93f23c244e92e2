"""
Cross-SDK inventory probe for AWS.

Lists EC2 and S3 resources through two boto3 API surfaces, normalizes them
into one resource model and reconciles what each surface can see.
"""

__version__ = "1.0.0"
