"""HTTP client for the remote library sources.

Listing uses the recursive git tree API; content comes from the raw file
host.  Both honour a ``ProxySettings`` holder that is read on every
request, so a proxy change applies to the next call without rebuilding
sessions.
"""

import logging
import threading
from collections.abc import Iterator
from typing import Any
from urllib.parse import urljoin

import requests

from ..config_schema import RemoteConfig
from ..errors import FetchError, ListingError
from ..profiles import Profile

logger = logging.getLogger(__name__)

_REDIRECT_STATUSES = (301, 302, 303, 307, 308)


class ProxySettings:
    """Process-wide outbound proxy, mutable at runtime.

    ``url`` of ``None`` means a direct connection.  Environment proxy
    variables are never consulted once a ``ProxySettings`` is in use.
    """

    def __init__(self, url: str | None = None) -> None:
        self._lock = threading.Lock()
        self._url = url or None

    @property
    def url(self) -> str | None:
        with self._lock:
            return self._url

    def set(self, url: str | None) -> None:
        with self._lock:
            self._url = url or None

    def as_requests_proxies(self) -> dict[str, str]:
        url = self.url
        if not url:
            return {}
        return {"http": url, "https": url}


class RemoteClient:
    def __init__(
        self,
        config: RemoteConfig | None = None,
        proxy: ProxySettings | None = None,
    ):
        self.config = config or RemoteConfig()
        self.proxy = proxy or ProxySettings(self.config.proxy)
        self._thread_local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Session of the calling thread."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers["User-Agent"] = self.config.user_agent
        # Proxies come from ProxySettings only
        session.trust_env = False
        return session

    @property
    def _timeout(self) -> tuple[float, float]:
        return (self.config.connect_timeout, self.config.read_timeout)

    def set_proxy(self, url: str | None) -> None:
        """Change the proxy used by subsequent requests."""
        self.proxy.set(url)
        logger.info("Proxy %s", f"set to {url}" if url else "cleared")

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def tree_url(self, profile: Profile) -> str:
        base = self.config.api_url.rstrip("/")
        return f"{base}/repos/{profile.repo}/git/trees/{profile.branch}"

    def raw_url(self, profile: Profile, path: str) -> str:
        base = self.config.raw_url.rstrip("/")
        return f"{base}/{profile.repo}/{profile.branch}/{path}"

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_files(
        self, profile: Profile, subpath: str | None = None
    ) -> list[str]:
        """
        List every file under *subpath* in the profile's repository.

        Args:
            profile: Profile to list.
            subpath: Repo path prefix, defaults to the profile's release root.

        Returns:
            Repo-relative paths of all blobs under *subpath*, in the
            order the remote reports them.

        Raises:
            ListingError: If the call fails for any reason, including a
                tree the remote reports as truncated.  A partial listing is
                never returned.
        """
        prefix = profile.release_root if subpath is None else subpath
        headers = {"Accept": "application/vnd.github+json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"

        try:
            response = self._get_session().get(
                self.tree_url(profile),
                params={"recursive": "1"},
                headers=headers,
                proxies=self.proxy.as_requests_proxies(),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ListingError(profile.id, str(exc)) from exc

        if response.status_code != 200:
            raise ListingError(
                profile.id,
                f"HTTP {response.status_code} listing {profile.repo}@{profile.branch}",
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ListingError(profile.id, f"invalid JSON: {exc}") from exc

        if not isinstance(data, dict) or not isinstance(
            data.get("tree"), list
        ):
            raise ListingError(profile.id, "response has no tree")
        if data.get("truncated"):
            raise ListingError(
                profile.id, "tree is truncated by the remote, listing incomplete"
            )

        paths = list(_iter_blob_paths(data["tree"], prefix))
        logger.debug(
            "Listed %d files under '%s' for %s", len(paths), prefix, profile.id
        )
        return paths

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def fetch_content(self, profile: Profile, path: str) -> bytes:
        """
        Retrieve the raw bytes of one repository file.

        At most one redirect is followed.

        Raises:
            FetchError: On transport errors, a second redirect, or any
                non-200 status.  Carries ``path`` and ``status``.
        """
        url = self.raw_url(profile, path)
        response = self._get(path, url)

        if response.status_code in _REDIRECT_STATUSES:
            location = response.headers.get("Location")
            if not location:
                raise FetchError(
                    path,
                    response.status_code,
                    f"HTTP {response.status_code} without Location fetching {path}",
                )
            # Location may be relative to the requested URL
            target = urljoin(url, location)
            logger.debug("Following redirect for %s -> %s", path, target)
            response = self._get(path, target)

        if response.status_code != 200:
            raise FetchError(path, response.status_code)

        return response.content

    def _get(self, path: str, url: str) -> requests.Response:
        try:
            return self._get_session().get(
                url,
                allow_redirects=False,
                proxies=self.proxy.as_requests_proxies(),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise FetchError(path, None, f"Failed to fetch {path}: {exc}") from exc


def _iter_blob_paths(tree: list[dict[str, Any]], prefix: str) -> Iterator[str]:
    for entry in tree:
        if entry.get("type") != "blob":
            continue
        path = entry.get("path")
        if isinstance(path, str) and path.startswith(prefix):
            yield path
