"""JTL-Wawi REST API Client"""

import json
from typing import Any, Dict, List, Optional

import requests

from config.settings import (
    JTL_API_URL, JTL_API_KEY, JTL_APP_ID, JTL_APP_VERSION, JTL_API_TIMEOUT
)
from modules.shared.errors import JtlApiError
from modules.shared.logging import create_module_logger

logger = create_module_logger('JTL_API', 'jtl_sync')

WORKFLOW_EVENT_PAID = 15
WORKFLOW_EVENT_ON_HOLD = 16


class JtlApiClient:
    """Client für die JTL-Wawi REST API (eazybusiness/v1)"""

    def __init__(self, api_key: str = JTL_API_KEY, base_url: str = JTL_API_URL,
                 timeout: int = JTL_API_TIMEOUT, session: Optional[requests.Session] = None):
        """
        Args:
            api_key: Wawi API Key (Header: Authorization: Wawi <key>)
            base_url: z.B. http://127.0.0.1:5883/api/eazybusiness/v1
            timeout: Request Timeout in Sekunden
            session: Optional - eigene requests.Session (Tests, Pooling)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Wawi {self.api_key}",
            "X-AppId": JTL_APP_ID,
            "X-AppVersion": JTL_APP_VERSION,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(self, method: str, path: str, params: Optional[Dict] = None,
                 payload: Any = None) -> Any:
        """Sende Request, gibt geparstes JSON zurück (oder None bei leerem Body)"""
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(),
                params=params,
                json=payload,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise JtlApiError(f"Request Fehler ({method} {path}): {e}") from e

        if not response.ok:
            raise JtlApiError(
                f"HTTP Fehler {response.status_code} ({method} {path}): {response.text}",
                status_code=response.status_code
            )

        if not response.content:
            return None

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise JtlApiError(f"JSON Decode Fehler ({method} {path}): {e}") from e

    # ===== Kunden =====

    def get_customer_by_number(self, number: str) -> Optional[Dict]:
        """Suche Kunde per Kundennummer, None wenn nicht vorhanden"""
        data = self._request("GET", "/customers", params={"searchKeyWord": number}) or {}
        items = data.get("Items") or []
        if data.get("TotalItems", 0) > 0 and items:
            return items[0]
        return None

    def create_customer(self, customer: Dict) -> Dict:
        data = self._request("POST", "/customers", payload=customer)
        logger.info(f"Kunde angelegt: {data.get('Id') if data else '?'}")
        return data or {}

    # ===== Aufträge =====

    def check_order_exists(self, external_number: str, customer_id: Any) -> bool:
        data = self._request(
            "GET", "/salesOrders",
            params={"externalOrderNumber": external_number, "customerId": customer_id}
        ) or {}
        return data.get("TotalItems", 0) > 0

    def create_order(self, order: Dict, items: List[Dict]) -> Dict:
        """Lege Auftrag an und füge danach die Positionen hinzu"""
        data = self._request("POST", "/salesOrders", payload=order) or {}
        order_id = data.get("Id")
        if not isinstance(order_id, int):
            raise JtlApiError(f"Ungültige Auftrags-ID in Antwort: {order_id!r}")

        self._request("POST", f"/salesOrders/{order_id}/lineitems", payload=items)
        logger.info(f"{len(items)} Positionen zu Auftrag {order_id} hinzugefügt")
        return data

    def set_payment_paid(self, order_id: Any):
        self._request("POST", f"/salesOrders/{order_id}/workflowEvents", payload={"Id": WORKFLOW_EVENT_PAID})
        logger.info(f"Auftrag {order_id} als bezahlt markiert")

    def set_order_hold(self, order_id: Any):
        self._request("POST", f"/salesOrders/{order_id}/workflowEvents", payload={"Id": WORKFLOW_EVENT_ON_HOLD})
        logger.info(f"Auftrag {order_id} zurückgestellt")
