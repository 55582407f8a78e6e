"""User-Agent generation for Orchext HTTP requests.

Format: orchext-cli/{version} ({source})

Examples:
- CLI: orchext-cli/0.3.0 (cli)
- Library use: orchext-cli/0.3.0 (lib)
"""

from __future__ import annotations

import os
from typing import Literal

from orchext import __version__

UserAgentSource = Literal["cli", "lib"]

ORCHEXT_CLIENT_SOURCE_ENV = "ORCHEXT_CLIENT_SOURCE"

DEFAULT_SOURCE: UserAgentSource = "cli"


def get_client_source() -> UserAgentSource:
    """Get the client source type from environment or default."""
    source = os.environ.get(ORCHEXT_CLIENT_SOURCE_ENV, "").lower()
    if source == "lib":
        return "lib"
    return DEFAULT_SOURCE


def build_user_agent(source: UserAgentSource | None = None) -> str:
    """Build the User-Agent header value."""
    if source is None:
        source = get_client_source()
    return f"orchext-cli/{__version__} ({source})"
