"""
Process configuration.

Values are read once from the environment (after load_env() has merged any
.env file) and are read-only afterwards.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class Config:
    """Read-only settings shared by the services and the CLI."""

    dispatch_city: str = ""
    dispatch_state: str = ""
    airtable_api_key: Optional[str] = None
    airtable_base_id: Optional[str] = None
    requests_table_name: str = "Requests"
    requests_view_name: str = "Grid view"
    volunteers_table_name: str = "Volunteers"
    volunteers_view_name: str = "Grid view"
    errors_table_name: str = "Errors"
    google_api_key: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Build a Config from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            Config with defaults applied for unset variables
        """
        env = os.environ if environ is None else environ
        return cls(
            dispatch_city=env.get("VOLUNTEER_DISPATCH_CITY", ""),
            dispatch_state=env.get("VOLUNTEER_DISPATCH_STATE", ""),
            airtable_api_key=env.get("AIRTABLE_API_KEY"),
            airtable_base_id=env.get("AIRTABLE_BASE_ID"),
            requests_table_name=env.get("AIRTABLE_REQUESTS_TABLE_NAME", "Requests"),
            requests_view_name=env.get("AIRTABLE_REQUESTS_VIEW_NAME", "Grid view"),
            volunteers_table_name=env.get("AIRTABLE_VOLUNTEERS_TABLE_NAME", "Volunteers"),
            volunteers_view_name=env.get("AIRTABLE_VOLUNTEERS_VIEW_NAME", "Grid view"),
            errors_table_name=env.get("AIRTABLE_ERRORS_TABLE_NAME", "Errors"),
            google_api_key=env.get("GOOGLE_API_KEY"),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )

    def address_suffix(self) -> str:
        """City and state appended to every street address before geocoding."""
        return f"{self.dispatch_city}, {self.dispatch_state}"
