"""
Deployment ID generation utilities.
"""

import random
import string
from datetime import datetime


def new_deployment_id() -> str:
    """
    Generate a new deployment ID in format: d-YYYYMMDD-hhmmss-XXXX
    
    Returns:
        str: Unique deployment ID
    """
    now = datetime.now()
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"d-{now:%Y%m%d}-{now:%H%M%S}-{suffix}"


def is_valid_deployment_id(deployment_id: str) -> bool:
    """
    Validate deployment ID format.
    
    Args:
        deployment_id: ID to validate
        
    Returns:
        bool: True if valid format
    """
    parts = deployment_id.split("-")
    if len(parts) != 4 or parts[0] != "d":
        return False

    date_part, time_part, suffix = parts[1:]
    if len(date_part) != 8 or not date_part.isdigit():
        return False
    if len(time_part) != 6 or not time_part.isdigit():
        return False

    return len(suffix) == 4 and suffix.isalnum() and suffix == suffix.lower()
