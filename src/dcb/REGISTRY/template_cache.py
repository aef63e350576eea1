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
Local cache for the template catalog index.
Stores the last fetched index on disk with the time it was fetched.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600


class TemplateCache:
    """
    Keeps the catalog index as JSON next to its fetch timestamp.
    Entries older than the TTL are stale and are not returned.
    """

    def __init__(self, cache_dir: Optional[str] = None, ttl: int = DEFAULT_TTL, clock=time.time):
        """
        Initialize the template cache.

        Args:
            cache_dir: Directory for cache storage. Defaults to ~/.dcb/cache
            ttl: Seconds an index stays fresh.
            clock: Callable returning the current time in seconds.
        """
        if cache_dir:
            self.cache_dir = Path(cache_dir)
        else:
            self.cache_dir = Path.home() / ".dcb" / "cache"
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.index_file = self.cache_dir / "templates.json"
        self.ttl = ttl
        self._clock = clock

    def _load(self) -> Optional[Dict[str, Any]]:
        if not self.index_file.exists():
            return None
        try:
            with open(self.index_file, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Ignoring unreadable template cache %s: %s", self.index_file, e)
            return None

    def get(self) -> Optional[List[Dict[str, Any]]]:
        """
        Get the cached index.

        Returns:
            The templates if a fresh index is cached, None otherwise
        """
        entry = self._load()
        if not entry or "timestamp" not in entry:
            return None
        age = self._clock() - entry["timestamp"]
        if age > self.ttl:
            logger.debug("Template cache is stale (%.0fs old)", age)
            return None
        return entry.get("templates", [])

    def put(self, templates: List[Dict[str, Any]]) -> None:
        """
        Store the index with the current time.

        Args:
            templates: Template descriptors as fetched
        """
        with open(self.index_file, 'w') as f:
            json.dump({"timestamp": self._clock(), "templates": templates}, f, indent=2)

    def invalidate(self) -> bool:
        """
        Remove the cached index.

        Returns:
            True if an index was removed
        """
        if self.index_file.exists():
            self.index_file.unlink()
            return True
        return False
