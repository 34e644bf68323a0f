"""
Notes client package.

The modules here hold everything except the Streamlit rendering: the API
client, hash router, session state, token redemption and action dispatch.
"""

from .api import APIClient, APIError
from .state import SessionState

__all__ = ["APIClient", "APIError", "SessionState"]
