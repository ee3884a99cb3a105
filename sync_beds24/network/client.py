"""
Client for the Beds24 API v2 with retries, token refresh, credit tracking
and an audit entry for every request.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

import requests
import structlog

from sync_beds24.config import BEDS24_API_URL, BEDS24_TIMEOUT_SECONDS
from sync_beds24.metrics import api_latency, api_requests
from sync_beds24.network.auth import response_body
from sync_beds24.services.audit import STATUS_ERROR, STATUS_SUCCESS, record_audit
from sync_beds24.services.token_service import TokenService

logger = structlog.get_logger(__name__)

MAX_RETRIES = 2
RETRY_DELAY = 2.0
MAX_PAGES = 500

CREDIT_HEADERS = {
    "request_cost": "x-request-cost",
    "limit_remaining": "x-five-min-limit-remaining",
    "limit_resets_in": "x-five-min-limit-resets-in",
}


def parse_credit_headers(headers: Any) -> Dict[str, Optional[int]]:
    """
    Read the Beds24 credit headers of a response.

    Returns:
        Dict with request_cost, limit_remaining and limit_resets_in (None when absent)
    """
    credit: Dict[str, Optional[int]] = {}
    for name, header in CREDIT_HEADERS.items():
        value = headers.get(header) if headers is not None else None
        try:
            credit[name] = int(value) if value is not None else None
        except (TypeError, ValueError):
            credit[name] = None
    return credit


def should_retry(res: Optional[requests.Response], err: Optional[Exception]) -> bool:
    """
    Determine whether the request should be retried based on response or error.

    Args:
        res (Optional[requests.Response]): Response object if available.
        err (Optional[Exception]): Exception raised by the request, if any.

    Returns:
        bool: True for 429, 5xx, timeouts and connection errors.
    """
    if res is not None and (res.status_code == 429 or 500 <= res.status_code < 600):
        return True
    if isinstance(err, (requests.Timeout, requests.ConnectionError)):
        return True
    return False


class Beds24Client:
    """
    Beds24 API client bound to one hotel's connection.

    Read requests use the read token and write requests the write token from
    the TokenService. A 401 triggers one retry with a token minted to replace
    the rejected one.

    Example:
        >>> client = Beds24Client(token_service, hotel_id="hotel-1")
        >>> bookings = client.fetch_all("bookings", "bookings_fetch", {"propertyId": 42})
    """

    def __init__(
        self,
        token_service: TokenService,
        hotel_id: str,
        org_id: Optional[str] = None,
        base_url: str = BEDS24_API_URL,
        timeout: float = BEDS24_TIMEOUT_SECONDS,
    ):
        self.token_service = token_service
        self.engine = token_service.engine
        self.hotel_id = hotel_id
        self.org_id = org_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.last_credit: Dict[str, Optional[int]] = {}

    def request(
        self,
        method: str,
        endpoint: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        for_write: bool = False,
        external_id: Optional[str] = None,
    ) -> Any:
        """
        Perform one API call and return the decoded JSON body.

        Args:
            method: HTTP method
            endpoint: Path below the API root (e.g. "bookings")
            operation: Audit operation name
            params: Query parameters
            json: JSON body
            for_write: Use the write-scoped token
            external_id: Beds24 id recorded on the audit entry

        Raises:
            requests.HTTPError: Non-2xx response after retries
            requests.RequestException: Transport failure after retries
            NoWriteCredential, RefreshFailed, ConnectionInErrorState: from the TokenService
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        token = self.token_service.get_access_token(self.hotel_id, for_write=for_write)
        token_retried = False
        retries = 0

        while True:
            headers = {"token": token, "accept": "application/json"}
            res: Optional[requests.Response] = None
            start_time = time.monotonic()
            try:
                res = requests.request(
                    method, url, headers=headers, params=params, json=json, timeout=self.timeout
                )
            except requests.RequestException as err:
                latency = time.monotonic() - start_time
                api_requests.labels(endpoint=endpoint, status_code="error").inc()
                api_latency.labels(endpoint=endpoint).observe(latency)
                self._audit(
                    operation, method, endpoint, params, json, headers, None, latency, external_id,
                    error={"reason": str(err)},
                )
                retries += 1
                if retries > MAX_RETRIES or not should_retry(None, err):
                    raise
                logger.warning("beds24_request_retry", endpoint=endpoint, error=type(err).__name__)
                time.sleep(RETRY_DELAY * retries)
                continue

            latency = time.monotonic() - start_time
            api_requests.labels(endpoint=endpoint, status_code=str(res.status_code)).inc()
            api_latency.labels(endpoint=endpoint).observe(latency)
            self.last_credit = parse_credit_headers(res.headers)
            self._audit(
                operation, method, endpoint, params, json, headers, res, latency, external_id
            )

            if res.status_code == 401 and not token_retried:
                logger.warning("beds24_token_rejected", endpoint=endpoint, hotel_id=self.hotel_id)
                token = self.token_service.get_access_token(
                    self.hotel_id, for_write=for_write, stale_token=token
                )
                token_retried = True
                continue

            if should_retry(res, None) and retries < MAX_RETRIES:
                retries += 1
                delay = RETRY_DELAY * retries
                resets_in = self.last_credit.get("limit_resets_in")
                if res.status_code == 429 and resets_in:
                    delay = min(float(resets_in), 60.0)
                logger.warning(
                    "beds24_request_retry", endpoint=endpoint, status_code=res.status_code, delay=delay
                )
                time.sleep(delay)
                continue

            res.raise_for_status()
            return response_body(res)

    def fetch_all(
        self, endpoint: str, operation: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch every page of a list endpoint.

        Beds24 list responses look like
        {"success": true, "data": [...], "pages": {"nextPageExists": bool, ...}};
        pages are requested sequentially with the page parameter.
        """
        results: List[Dict[str, Any]] = []
        page = 1
        while page <= MAX_PAGES:
            body = self.request("GET", endpoint, operation, params={**(params or {}), "page": page})
            data = body.get("data", []) if isinstance(body, dict) else body
            results.extend(data or [])

            pages = body.get("pages") if isinstance(body, dict) else None
            if not pages or not pages.get("nextPageExists"):
                break
            page += 1
        else:
            logger.warning("beds24_page_limit_reached", endpoint=endpoint, pages=MAX_PAGES)

        logger.info("beds24_fetched", endpoint=endpoint, count=len(results), pages=page)
        return results

    def _audit(
        self,
        operation: str,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]],
        body: Any,
        headers: Dict[str, str],
        res: Optional[requests.Response],
        latency: float,
        external_id: Optional[str],
        error: Any = None,
    ) -> None:
        response_payload = None
        status = STATUS_ERROR
        credit: Dict[str, Optional[int]] = {}
        if res is not None:
            response_payload = {"status_code": res.status_code, "body": response_body(res)}
            credit = parse_credit_headers(res.headers)
            if res.ok:
                status = STATUS_SUCCESS
            else:
                error = {"status_code": res.status_code, "body": response_payload["body"]}

        record_audit(
            self.engine,
            operation=operation,
            status=status,
            hotel_id=self.hotel_id,
            org_id=self.org_id,
            external_id=external_id,
            request_payload={
                "method": method,
                "endpoint": endpoint,
                "params": params,
                "body": body,
                "headers": headers,
            },
            response_payload=response_payload,
            error=error,
            duration_ms=int(latency * 1000),
            credit=credit,
            provider=self.token_service.provider,
        )
