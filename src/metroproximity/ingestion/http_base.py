from __future__ import annotations

# `logging` reports each provider call (with secrets masked) and nothing else.
import logging
# `random` adds optional jitter to the throttle so parallel operators do not burst in sync.
import random
# `re` masks access tokens that travel in query strings.
import re
# `time` provides the monotonic clock and sleep used for pacing.
import time
from typing import Any, Mapping, Optional

# `requests` performs HTTP calls; this module is the only place that touches a `Session` directly.
import requests
# `HTTPAdapter` + `Retry` let us mount an explicit zero-retry policy (a failed call is reported, not replayed).
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from metroproximity.errors import ProviderTimeout, ProviderUnavailable, Unauthorized


logger = logging.getLogger(__name__)

# Mapbox authenticates with `access_token=` in the URL; log lines must never carry it.
_TOKEN_RE = re.compile(r"(access_token=)[^&\s]+")


def mask_secrets(url: str) -> str:
    return _TOKEN_RE.sub(r"\1***", url)


class _RateLimiter:
    """
    Minimal client-side throttle.

    Providers rate-limit per key; keeping at least `min_interval_s` between the end of one call and
    the start of the next keeps a long generation run (stations x durations) under that limit
    without any retry logic. Slow calls never shorten the gap.
    """

    def __init__(
        self,
        *,
        min_interval_s: float,
        jitter_s: float = 0.0,
        now_fn=time.monotonic,
        sleep_fn=time.sleep,
    ) -> None:
        self._min_interval_s = max(float(min_interval_s), 0.0)
        self._jitter_s = max(float(jitter_s), 0.0)
        # Clock and sleep are injectable so tests can drive pacing without real waiting.
        self._now = now_fn
        self._sleep = sleep_fn
        self._next_allowed_at = 0.0

    def wait(self) -> None:
        """Block until the next call is allowed to start."""

        if self._min_interval_s <= 0:
            return
        now = float(self._now())
        remaining = self._next_allowed_at - now
        if remaining > 0:
            jitter = random.random() * self._jitter_s if self._jitter_s else 0.0
            self._sleep(remaining + jitter)
            now = float(self._now())
        self._next_allowed_at = now + self._min_interval_s

    def mark_done(self) -> None:
        """Record that a call finished (successfully or not); the gap is measured from here."""

        if self._min_interval_s <= 0:
            return
        self._next_allowed_at = float(self._now()) + self._min_interval_s


class ProviderSession:
    """
    `requests.Session` wrapper shared by the provider clients.

    - One request per call: the mounted retry policy is explicitly zero, a failure is a failure.
    - Transport errors are mapped onto the provider error taxonomy here so clients only deal
      with payload semantics.
    """

    def __init__(
        self,
        *,
        provider: str,
        timeout_s: float,
        user_agent: str,
        min_request_interval_s: float = 0.0,
        rate_limiter: Optional[_RateLimiter] = None,
    ) -> None:
        self.provider = provider
        self._timeout_s = timeout_s
        # A caller-supplied limiter wins (tests inject a fake clock); otherwise pace from config.
        self._rate_limiter = rate_limiter or _RateLimiter(min_interval_s=min_request_interval_s)

        self._session = requests.Session()
        # A descriptive User-Agent is required by the Overpass usage policy and harmless for Mapbox.
        self._session.headers.update({"User-Agent": user_agent})

        # `redirect` stays enabled; everything else is a single attempt.
        no_retry = Retry(total=0, connect=0, read=0, status=0, redirect=3, raise_on_status=False)
        self._session.mount("https://", HTTPAdapter(max_retries=no_retry))
        self._session.mount("http://", HTTPAdapter(max_retries=no_retry))

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Any = None,
        timeout_s: Optional[float] = None,
    ) -> requests.Response:
        self._rate_limiter.wait()
        timeout = self._timeout_s if timeout_s is None else timeout_s
        safe_url = mask_secrets(url)
        logger.debug("%s %s %s", self.provider, method, safe_url)
        try:
            resp = self._session.request(method, url, params=params, data=data, timeout=timeout)
        except requests.Timeout as exc:
            raise ProviderTimeout(
                f"{self.provider} request timed out after {timeout}s: {safe_url}", provider=self.provider
            ) from exc
        except requests.RequestException as exc:
            # Exception text can echo the full URL, token included.
            raise ProviderUnavailable(
                f"{self.provider} request failed: {mask_secrets(str(exc))}", provider=self.provider
            ) from exc
        finally:
            # Failed calls count too: the next call still waits out the full interval.
            self._rate_limiter.mark_done()

        if resp.status_code in (401, 403):
            raise Unauthorized(
                f"{self.provider} rejected the credentials ({resp.status_code})",
                provider=self.provider,
                status_code=resp.status_code,
            )
        # Rate limiting and server errors are reported as "unavailable"; the caller skips the item.
        if resp.status_code == 429 or resp.status_code >= 500:
            raise ProviderUnavailable(
                f"{self.provider} request failed ({resp.status_code}): {resp.text[:500]}",
                provider=self.provider,
                status_code=resp.status_code,
            )
        return resp

    def close(self) -> None:
        self._session.close()
