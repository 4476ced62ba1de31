"""Mapping VirtueMart → JTL-Wawi (Zahlungsarten, Länder, Adressen, Positionen)"""

from datetime import datetime
from typing import Dict, List, Optional

from modules.shared.logging import create_module_logger

logger = create_module_logger('JTL_MAPPING', 'jtl_sync')

DEFAULT_PAYMENT_METHOD_ID = 20
CREDIT_CARD_PAYMENT_METHOD_ID = 4
DEFAULT_SHIPPING_METHOD_ID = 7
DEFAULT_COUNTRY_ISO = "DE"
VAT_RATE = 19.0

# VirtueMart Zahlungsart → JTL Zahlungsart
PAYMENT_METHOD_MAPPING: Dict[int, int] = {
    2: 38,    # Giropay → Giropay
    14: 4,    # Klarna → Kreditkarte
    4: 2,     # Vorkasse → Überweisung
    5: 4,     # MasterCard/VISA → Kreditkarte
    6: 39,    # Sofortüberweisung
    8: 27,    # Barzahlung bei Abholung → Bar
    9: 9,     # PayPal Express
    10: 34,   # Amazon Pay
    17: 10,   # PayPal Plus
}

# VirtueMart Länder-ID → ISO
COUNTRY_MAPPING: Dict[int, str] = {
    81: "DE",
    14: "AT",
    204: "CH",
    21: "BE",
    150: "NL",
    105: "IT",
    73: "FR",
    195: "ES",
    222: "GB",
}


def map_payment_method(payment_method_id: Optional[int]) -> int:
    """VirtueMart Zahlungsart → JTL Zahlungsart-ID (unbekannt → Default)"""
    if payment_method_id is None:
        logger.info(f"Keine Zahlungsart angegeben, nutze Default {DEFAULT_PAYMENT_METHOD_ID}")
        return DEFAULT_PAYMENT_METHOD_ID

    jtl_id = PAYMENT_METHOD_MAPPING.get(payment_method_id)
    if jtl_id is None:
        logger.info(f"Unbekannte Zahlungsart {payment_method_id}, nutze Default {DEFAULT_PAYMENT_METHOD_ID}")
        return DEFAULT_PAYMENT_METHOD_ID
    return jtl_id


def get_country_code(country_id: Optional[int]) -> Optional[str]:
    if country_id is None:
        return None
    return COUNTRY_MAPPING.get(country_id)


def external_order_number(order) -> str:
    """Externe Bestellnummer in JTL"""
    return f"VM{order.virtuemart_order_id}"


def customer_number(order) -> str:
    """Kundennummer in JTL"""
    return f"VM{order.virtuemart_order_userinfo_id or 0}"


def format_iso_date(value: Optional[datetime]) -> str:
    """ISO 8601; fehlendes Datum → jetzt"""
    return (value or datetime.now()).replace(microsecond=0).isoformat()


def create_address(address) -> Dict:
    """JTL Adress-Objekt aus VirtueMart Adresse (BT oder ST)"""
    street = address.address_1 or ""
    if address.address_2:
        street = f"{street} {address.address_2}"

    return {
        "City": address.city or "",
        "CountryIso": get_country_code(address.virtuemart_country_id) or DEFAULT_COUNTRY_ISO,
        "Company": address.company or "",
        "FormOfAddress": "",
        "Title": "",
        "FirstName": address.first_name or "",
        "LastName": address.last_name or "",
        "Street": street,
        "Address2": "",
        "PostalCode": address.zip or "",
        "State": "",
        "PhoneNumber": address.phone_1 or "",
        "MobilePhoneNumber": address.phone_2 or "",
        "EmailAddress": address.email or "",
        "Fax": "",
    }


def _addresses(order):
    billing = create_address(order)
    shipping = create_address(order.shipping_address) if order.shipping_address else dict(billing)
    return billing, shipping


def build_customer_payload(order) -> Dict:
    """Neuer JTL Kunde"""
    billing, shipping = _addresses(order)
    return {
        "CustomerGroupId": 1,
        "BillingAddress": billing,
        "InternalCompanyId": 1,
        "LanguageIso": "DE",
        "Shipmentaddress": shipping,
        "CustomerSince": format_iso_date(order.created_on),
        "Number": customer_number(order),
    }


def build_order_payload(order, shop_name: str, customer_id: int) -> Dict:
    """JTL Auftrag (ohne Positionen)"""
    billing, shipping = _addresses(order)
    order_date = format_iso_date(order.created_on)
    return {
        "CustomerId": customer_id,
        "ExternalNumber": external_order_number(order),
        "CompanyId": 1,
        "DepartureCountry": {"CountryISO": "DE", "CurrencyIso": "EUR", "CurrencyFactor": 1.0},
        "BillingAddress": billing,
        "Shipmentaddress": shipping,
        "SalesOrderDate": order_date,
        "SalesOrderPaymentDetails": {
            "PaymentMethodId": map_payment_method(order.virtuemart_paymentmethod_id),
            "CurrencyIso": "EUR",
            "CurrencyFactor": 1.0,
        },
        "SalesOrderShippingDetail": {
            "ShippingMethodId": DEFAULT_SHIPPING_METHOD_ID,
            "ShippingDate": order_date,
        },
        "Comment": f"Shop: {shop_name} - {order.customer_note or ''}",
        "LanguageIso": "DE",
    }


def _net(gross: float) -> float:
    return round(gross / (1 + VAT_RATE / 100), 4)


def build_line_items(order, shop_name: str) -> List[Dict]:
    """Positionen inkl. Gutschein- und Versandposition"""
    items = [
        {
            "Quantity": item.product_quantity,
            "SalesPriceGross": item.product_final_price,
            "TaxRate": VAT_RATE,
            "Name": f"[{shop_name}] {item.order_item_name}",
            "SalesUnit": "stk",
            "SalesPriceNet": item.product_price_without_tax
            if item.product_price_without_tax is not None else _net(item.product_final_price),
            "PurchasePriceNet": None,
        }
        for item in order.items
    ]

    if order.coupon_code:
        discount = order.coupon_discount or 0.0
        items.append({
            "Quantity": 1,
            "SalesPriceGross": discount,
            "TaxRate": 0.0,
            "Name": f"[{shop_name}] Coupon: {order.coupon_code}",
            "SalesUnit": "stk",
            "SalesPriceNet": discount,
            "PurchasePriceNet": None,
        })

    if order.order_shipment and order.order_shipment > 0:
        items.append({
            "Quantity": 1,
            "SalesPriceGross": order.order_shipment,
            "TaxRate": VAT_RATE,
            "Name": f"[{shop_name}] Shipping",
            "SalesUnit": "stk",
            "SalesPriceNet": _net(order.order_shipment),
            "PurchasePriceNet": None,
        })

    return items


def is_paid(order) -> bool:
    """Status 'C' (confirmed) und keine Kreditkarten-Zahlung → als bezahlt markieren"""
    return (order.order_status == "C"
            and map_payment_method(order.virtuemart_paymentmethod_id) != CREDIT_CARD_PAYMENT_METHOD_ID)
