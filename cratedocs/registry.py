"""
Package sources for CrateDocs.

Packages come either from the crates.io API (most downloaded first) or from a
flat file with one ``<repository-url> <name> <version>`` entry per line.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cratedocs.config import DEFAULT_REGISTRY_URL
from cratedocs.exceptions import RegistryError
from cratedocs.repo_manager import is_repository_reference
from cratedocs.schemas import PackageVersion

logger = logging.getLogger("cratedocs.registry")

PAGE_SIZE = 100


class CratesIoClient:
    """Client for the crates.io listing API."""

    def __init__(
        self,
        user_agent: str,
        base_url: str = DEFAULT_REGISTRY_URL,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            user_agent: User-Agent header; crates.io rejects requests without one
            base_url: API root
            timeout: Total seconds allowed per request
        """
        self.user_agent = user_agent
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @retry(
        retry=retry_if_exception_type((aiohttp.ClientError, asyncio.TimeoutError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _get_page(self, session: aiohttp.ClientSession, page: int, per_page: int) -> Dict[str, Any]:
        url = f"{self.base_url}/crates"
        params = {"sort": "downloads", "page": str(page), "per_page": str(per_page)}
        async with session.get(url, params=params) as response:
            if response.status != 200:
                error_text = await response.text()
                raise RegistryError(f"crates.io returned {response.status} for page {page}: {error_text}")
            return await response.json()

    async def top_crates(self, limit: int) -> List[PackageVersion]:
        """Fetch the ``limit`` most downloaded crates that declare a usable repository.

        Crates without a recognized repository reference are skipped and do not
        count towards ``limit``.

        Raises:
            RegistryError: If the API cannot be reached or answers with an error
        """
        packages: List[PackageVersion] = []
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        page = 1

        try:
            async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
                while len(packages) < limit:
                    data = await self._get_page(session, page, PAGE_SIZE)
                    crates = data.get("crates") or []
                    if not crates:
                        break

                    for crate in crates:
                        package = package_from_crate(crate)
                        if package is None:
                            logger.debug(f"Skipping {crate.get('name')}: no supported repository")
                            continue
                        packages.append(package)
                        if len(packages) >= limit:
                            break

                    if not (data.get("meta") or {}).get("next_page"):
                        break
                    page += 1
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RegistryError(f"Failed to query crates.io: {str(e) or 'request timed out'}") from e

        logger.info(f"Fetched {len(packages)} crates from {self.base_url}")
        return packages


def package_from_crate(crate: Dict[str, Any]) -> Optional[PackageVersion]:
    """Build a PackageVersion from a crates.io crate record, or None if unusable."""
    name = crate.get("name")
    version = crate.get("max_stable_version") or crate.get("max_version") or crate.get("newest_version")
    repository = (crate.get("repository") or "").strip()
    if not name or not version or not is_repository_reference(repository):
        return None
    return PackageVersion(name=name, version=version, repository=repository)


def parse_package_line(line: str) -> Optional[PackageVersion]:
    """Parse one ``<repository-url> <name> <version>`` line.

    Returns None for blank lines, comments and lines that do not start with a
    recognized repository prefix.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or not is_repository_reference(stripped):
        return None

    fields = stripped.split()
    if len(fields) < 3:
        logger.warning(f"Skipping incomplete entry (expected '<repository-url> <name> <version>'): {stripped}")
        return None

    repository, name, version = fields[:3]
    return PackageVersion(name=name, version=version, repository=repository)


def read_package_file(path: str) -> List[PackageVersion]:
    """Read packages from a flat file, preserving their order."""
    packages = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            package = parse_package_line(line)
            if package is not None:
                packages.append(package)

    logger.info(f"Read {len(packages)} packages from {path}")
    return packages
