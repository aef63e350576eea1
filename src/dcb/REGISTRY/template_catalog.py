# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Client for the remote template catalog.
Fetches the catalog index and per-template compose and metadata files.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from urllib.request import urlopen, Request
from urllib.error import HTTPError, URLError

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from .template_cache import TemplateCache

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_URL = "https://raw.githubusercontent.com/hhftechnology/Marketplace/main"


class CatalogError(RuntimeError):
    """Raised when the catalog cannot be read."""


@dataclass
class CatalogTemplate:
    """A template as downloaded from the catalog."""
    id: str
    compose: str
    template_toml: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)


def _transient(error: BaseException) -> bool:
    # HTTP errors are answers, only connection failures are retried.
    return isinstance(error, URLError) and not isinstance(error, HTTPError)


class TemplateCatalog:
    """
    Reads the catalog: ``meta.json`` lists the templates, and
    ``compose-files/<id>/`` holds each template's ``docker-compose.yml`` and
    optional ``template.toml``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_CATALOG_URL,
        cache: Optional[TemplateCache] = None,
        opener: Callable = urlopen,
        attempts: int = 3,
        backoff: float = 0.5,
    ):
        """
        Initialize the catalog client.

        Args:
            base_url: Raw file root of the catalog repository
            cache: Cache for the index; no caching when omitted
            opener: ``urlopen``-compatible callable
            attempts: Connection attempts per file
            backoff: Initial backoff in seconds, doubled per retry
        """
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self._opener = opener
        self._retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=backoff, max=8),
            retry=retry_if_exception(_transient),
            reraise=True,
        )

    def _read(self, url: str) -> bytes:
        with self._opener(Request(url), timeout=30) as response:
            return response.read()

    def _fetch(self, path: str) -> bytes:
        url = f"{self.base_url}/{path}"
        logger.debug("Fetching %s", url)
        try:
            return self._retrying(self._read, url)
        except HTTPError as e:
            raise CatalogError(f"Failed to fetch {path}: HTTP {e.code}") from e
        except URLError as e:
            raise CatalogError(f"Failed to fetch {path}: {e.reason}") from e

    def list_templates(self, refresh: bool = False) -> List[Dict[str, Any]]:
        """
        Get the catalog index.

        Args:
            refresh: Ignore and replace the cached index

        Returns:
            Template descriptors (``id``, ``name``, ``description``, ``tags``, ...)
        """
        if self.cache is not None:
            if refresh:
                self.cache.invalidate()
            else:
                cached = self.cache.get()
                if cached is not None:
                    return cached

        try:
            templates = json.loads(self._fetch("meta.json").decode())
        except ValueError as e:
            raise CatalogError(f"Invalid catalog index: {e}") from e
        if not isinstance(templates, list):
            raise CatalogError("Invalid catalog index: expected a list")

        if self.cache is not None:
            self.cache.put(templates)
        return templates

    def search(self, text: str, refresh: bool = False) -> List[Dict[str, Any]]:
        """
        Filter the index by a case-insensitive match on id, name, description or tags.
        """
        needle = text.lower()
        matches = []
        for template in self.list_templates(refresh=refresh):
            haystack = [
                str(template.get("id", "")),
                str(template.get("name", "")),
                str(template.get("description", "")),
            ] + [str(tag) for tag in template.get("tags") or []]
            if any(needle in value.lower() for value in haystack):
                matches.append(template)
        return matches

    def fetch_template(self, template_id: str) -> CatalogTemplate:
        """
        Download a template's files.

        Args:
            template_id: Catalog id

        Returns:
            The compose document and, when published, the template metadata
        """
        meta = next((t for t in self.list_templates() if t.get("id") == template_id), None)
        if meta is None:
            raise CatalogError(f"Template {template_id} not found")

        base = f"compose-files/{template_id}"
        compose = self._fetch(f"{base}/docker-compose.yml").decode()
        try:
            template_toml: Optional[str] = self._fetch(f"{base}/template.toml").decode()
        except CatalogError as e:
            logger.info("No template metadata for %s: %s", template_id, e)
            template_toml = None
        return CatalogTemplate(id=template_id, compose=compose, template_toml=template_toml, meta=meta)
