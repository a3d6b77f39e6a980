"""Docker Registry v2 client: bearer token exchange and manifest digests."""

from __future__ import annotations

import logging
import re

import requests

from deckhouse_status.deadline import Deadline
from deckhouse_status.errors import (
    DecodeError,
    DeckhouseStatusError,
    InputError,
    NotFoundError,
    OperationCancelled,
    ProtocolError,
    RegistryAuthError,
    TransportError,
)
from deckhouse_status.observation.models import RegistryCreds
from deckhouse_status.registry.models import RegistryVerdict

logger = logging.getLogger(__name__)

MANIFEST_ACCEPT = "application/vnd.docker.distribution.manifest.v2+json"
DIGEST_HEADER = "Docker-Content-Digest"
DEFAULT_REQUEST_TIMEOUT = 10.0

_CHALLENGE_PARAM_RE = re.compile(r'(\w+)="([^"]*)"')


def parse_challenge(header: str) -> dict[str, str]:
    """Collect the ``key="value"`` pairs of a WWW-Authenticate header."""
    return {key: value for key, value in _CHALLENGE_PARAM_RE.findall(header)}


class RegistryClient:
    """Answers "does this tag still exist, and is it what we run?"."""

    def __init__(
        self,
        session: requests.Session | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        scheme: str = "https",
    ) -> None:
        self._session = session or requests.Session()
        self.request_timeout = request_timeout
        self.scheme = scheme

    def _request(self, method: str, url: str, deadline: Deadline | None, **kwargs) -> requests.Response:
        timeout = deadline.request_timeout(self.request_timeout) if deadline else self.request_timeout
        logger.debug("Registry %s %s", method, url)
        try:
            return self._session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError.wrap(f"{method} {url}", e) from e

    def fetch_token(
        self,
        host: str,
        repo: str,
        creds: RegistryCreds | None = None,
        deadline: Deadline | None = None,
    ) -> str:
        """Return a pull token for ``repo``, or "" when the registry is open."""
        try:
            probe = self._request("GET", f"{self.scheme}://{host}/v2/", deadline)
        except TransportError as e:
            raise TransportError(f"cannot reach registry: {e}") from e
        if probe.status_code == 200:
            return ""

        challenge = probe.headers.get("WWW-Authenticate", "")
        if not challenge:
            raise RegistryAuthError("no WWW-Authenticate header from registry", status_code=probe.status_code)
        params = parse_challenge(challenge)
        realm = params.get("realm", "")
        if not realm:
            raise RegistryAuthError("no realm in WWW-Authenticate", status_code=probe.status_code)

        query = {"scope": f"repository:{repo}:pull"}
        if params.get("service"):
            query["service"] = params["service"]
        headers = {}
        if creds is not None and creds.auth:
            headers["Authorization"] = f"Basic {creds.auth}"

        try:
            resp = self._request("GET", realm, deadline, params=query, headers=headers)
        except TransportError as e:
            raise TransportError(f"token request failed: {e}") from e
        if resp.status_code != 200:
            raise RegistryAuthError(f"token request: HTTP {resp.status_code}", status_code=resp.status_code)
        try:
            body = resp.json()
        except ValueError as e:
            raise DecodeError(f"cannot decode token response: {e}") from e
        if not isinstance(body, dict):
            raise DecodeError("cannot decode token response: not an object")
        # Some registries only send the OAuth2 field name.
        return body.get("token") or body.get("access_token") or ""

    def resolve_digest(
        self,
        host: str,
        repo: str,
        reference: str,
        token: str = "",
        deadline: Deadline | None = None,
    ) -> str:
        """HEAD the manifest of a tag or digest and return its content digest.

        Raises NotFoundError on 404 so callers can tell "gone" from "broken".
        """
        headers = {"Accept": MANIFEST_ACCEPT}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        url = f"{self.scheme}://{host}/v2/{repo}/manifests/{reference}"
        resp = self._request("HEAD", url, deadline, headers=headers)

        if resp.status_code == 404:
            raise NotFoundError.reference(reference)
        if resp.status_code != 200:
            raise ProtocolError.http_status(resp.status_code)
        digest = resp.headers.get(DIGEST_HEADER, "")
        if not digest:
            raise ProtocolError.missing_header(DIGEST_HEADER)
        return digest

    def check(
        self,
        host: str,
        repo: str,
        tag: str,
        running_digest: str,
        creds: RegistryCreds | None = None,
        deadline: Deadline | None = None,
    ) -> RegistryVerdict:
        """Compare the registry's view of ``tag`` with the running digest.

        Never raises for registry trouble; the error rides on the verdict.
        """
        verdict = RegistryVerdict()
        if not (host and repo and tag):
            verdict.error = InputError.incomplete_image(f"{host}/{repo}:{tag}")
            return verdict

        try:
            token = self.fetch_token(host, repo, creds, deadline)
        except OperationCancelled as e:
            verdict.error = e
            return verdict
        except DeckhouseStatusError as e:
            verdict.error = RegistryAuthError(f"registry auth: {e}")
            return verdict

        try:
            digest = self.resolve_digest(host, repo, tag, token, deadline)
        except NotFoundError:
            pass
        except DeckhouseStatusError as e:
            verdict.error = e
            return verdict
        else:
            verdict.tag_exists = True
            verdict.digest = digest
            verdict.digest_match = digest == running_digest
            return verdict

        if running_digest:
            try:
                self.resolve_digest(host, repo, running_digest, token, deadline)
            except DeckhouseStatusError as e:
                logger.debug("Running digest %s not resolvable: %s", running_digest, e)
            else:
                verdict.image_exists = True
        return verdict
