"""Uploaded file references."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class File:
    """A file stored by the API, addressable through its URLs."""
    id: str
    name: str = ""
    content_type: str = ""
    size: int = 0
    etag: str = ""
    checksums: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    expires_at: Optional[str] = None
    urls: Dict[str, str] = field(default_factory=dict)

    @property
    def get_url(self) -> Optional[str]:
        """URL the file content can be retrieved from."""
        return self.urls.get("get")
