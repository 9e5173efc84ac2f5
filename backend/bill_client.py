"""
Bill page client.
Fetches order bill pages from the legacy billing system with a
pre-obtained session cookie.
"""

import os

import httpx


BILL_URL = os.environ.get('BILL_URL',
    'https://vbinfotech.tech/2024/party_master/bill.php?order_id=')
BILL_COOKIE = os.environ.get('BILL_COOKIE', '')
BILL_USER_AGENT = os.environ.get('BILL_USER_AGENT',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36')
BILL_REFERER = os.environ.get('BILL_REFERER',
    'https://vbinfotech.tech/2024/party_master/manage_order.php')


class BillClient:
    """
    Async client for bill pages. Use as an async context manager:

        async with BillClient() as client:
            html = await client.fetch_order_page(1234)
    """

    def __init__(self, base_url: str = None, cookie: str = None,
                 user_agent: str = None, referer: str = None,
                 timeout: float = 30.0, transport: httpx.AsyncBaseTransport = None):
        self.base_url = base_url if base_url is not None else BILL_URL
        self.headers = {
            'Cookie': cookie if cookie is not None else BILL_COOKIE,
            'User-Agent': user_agent if user_agent is not None else BILL_USER_AGENT,
            'Referer': referer if referer is not None else BILL_REFERER,
        }
        self.timeout = timeout
        self._transport = transport
        self._client = None

    def order_url(self, foreign_id: int) -> str:
        return f"{self.base_url}{foreign_id}"

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=False,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self._client.aclose()
        self._client = None

    async def fetch_order_page(self, foreign_id: int) -> str:
        """
        Fetch the raw bill page for one order.

        Raises:
            httpx.HTTPStatusError: on a non-2xx response (an expired session
                shows up as a 302 to the login page)
            httpx.RequestError: on network errors and timeouts
        """
        if self._client is None:
            raise RuntimeError("BillClient must be used inside 'async with'")
        response = await self._client.get(self.order_url(foreign_id))
        response.raise_for_status()
        return response.text
