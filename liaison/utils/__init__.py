"""
Shared utility functions.
"""

from liaison.utils.config_helpers import load_client_config, merge_configs
from liaison.utils.helpers import redact_fields, redact_headers
from liaison.utils.log_helpers import setup_logger

__all__ = [
    # Log hygiene
    "redact_headers",
    "redact_fields",
    "setup_logger",
    # Configuration utilities
    "merge_configs",
    "load_client_config",
]
