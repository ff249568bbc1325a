"""
Tests for the transfer and order rule tables.

Run with: pytest cookie_ledger/tests/test_classifier.py -v
"""

import pytest

from cookie_ledger.classifier import (
    KNOWN_TRANSFER_TYPES,
    TransferFlags,
    classify_dc_order,
    classify_order_status,
    classify_payment_method,
    classify_transfer,
    is_dc_auto_sync,
    is_order_shaped,
    matches_troop,
)
from cookie_ledger.models import OrderType, Owner, PaymentMethod, StatusClass, TransferCategory


class TestClassifyTransfer:
    """Raw type -> category table."""

    @pytest.mark.parametrize("raw_type,expected", [
        ("C2T", TransferCategory.COUNCIL_TO_TROOP),
        ("C2T(P)", TransferCategory.COUNCIL_TO_TROOP),
        ("G2T", TransferCategory.GIRL_RETURN),
        ("D", TransferCategory.DC_ORDER_RECORD),
        ("DIRECT_SHIP", TransferCategory.DIRECT_SHIP),
        ("PLANNED", TransferCategory.PLANNED),
        ("T2G", TransferCategory.GIRL_PICKUP),
        ("COOKIE_SHARE", TransferCategory.COOKIE_SHARE_RECORD),
        ("COOKIE_SHARE_D", TransferCategory.COOKIE_SHARE_RECORD),
    ])
    def test_fixed_types(self, raw_type, expected):
        assert classify_transfer(raw_type) == expected

    def test_unknown_type(self):
        assert classify_transfer("ZZZ") == TransferCategory.UNKNOWN
        assert classify_transfer("") == TransferCategory.UNKNOWN

    def test_whitespace_is_ignored(self):
        assert classify_transfer(" T2G ") == TransferCategory.GIRL_PICKUP

    def test_every_known_type_has_a_category(self):
        for raw_type in KNOWN_TRANSFER_TYPES:
            assert classify_transfer(raw_type) != TransferCategory.UNKNOWN

    def test_t2g_flag_precedence(self):
        all_flags = TransferFlags(virtual_booth=True, booth_divider=True, direct_ship_divider=True)
        assert classify_transfer("T2G", all_flags) == TransferCategory.VIRTUAL_BOOTH_ALLOCATION

        booth = TransferFlags(booth_divider=True, direct_ship_divider=True)
        assert classify_transfer("T2G", booth) == TransferCategory.BOOTH_SALES_ALLOCATION

        direct = TransferFlags(direct_ship_divider=True)
        assert classify_transfer("T2G", direct) == TransferCategory.DIRECT_SHIP_ALLOCATION

    def test_booth_cookie_share(self):
        flags = TransferFlags(booth_divider=True)
        assert classify_transfer("COOKIE_SHARE", flags) == TransferCategory.BOOTH_COOKIE_SHARE

    def test_t2t_direction(self):
        outgoing = classify_transfer("T2T", from_="Troop 3990", troop_number="3990")
        incoming = classify_transfer("T2T", from_="4121", troop_number="3990")
        assert outgoing == TransferCategory.TROOP_OUTGOING
        assert incoming == TransferCategory.COUNCIL_TO_TROOP

    def test_t2t_without_known_troop_is_incoming(self):
        assert classify_transfer("T2T", from_="3990") == TransferCategory.COUNCIL_TO_TROOP


class TestTroopMatching:
    """Troop id/name comparison."""

    def test_exact(self):
        assert matches_troop("3990", "3990")

    def test_digit_run(self):
        assert matches_troop("Troop 3990", "3990")
        assert matches_troop("3990", "Troop 3990")

    def test_different(self):
        assert not matches_troop("Troop 4121", "3990")

    def test_blank(self):
        assert not matches_troop("", "3990")
        assert not matches_troop("3990", None)


class TestOrderShape:
    """D-prefixed order numbers mirror DC orders."""

    def test_order_shaped(self):
        assert is_order_shaped("D123456")

    def test_not_order_shaped(self):
        assert not is_order_shaped("123456")
        assert not is_order_shaped("D")
        assert not is_order_shaped("DIRECT")
        assert not is_order_shaped("")


class TestClassifyDCOrder:
    """DC order type table."""

    @pytest.mark.parametrize("dc_type,expected", [
        ("Donation", OrderType.DONATION),
        ("Shipped", OrderType.DIRECT_SHIP),
        ("Shipped with Donation", OrderType.DIRECT_SHIP),
        ("In-Person Delivery", OrderType.DELIVERY),
        ("In Person Delivery with Donation", OrderType.DELIVERY),
        ("Pick Up", OrderType.DELIVERY),
        ("Cookies in Hand", OrderType.IN_HAND),
    ])
    def test_girl_orders(self, dc_type, expected):
        owner, order_type = classify_dc_order(False, dc_type)
        assert owner == Owner.GIRL
        assert order_type == expected

    def test_site_cookies_in_hand_is_booth(self):
        owner, order_type = classify_dc_order(True, "Cookies in Hand")
        assert owner == Owner.TROOP
        assert order_type == OrderType.BOOTH

    def test_unknown_type_is_none(self):
        _, order_type = classify_dc_order(False, "Drone Drop")
        assert order_type is None


class TestPaymentAndStatus:
    """Payment method and status class tables."""

    @pytest.mark.parametrize("status,expected", [
        ("CASH", PaymentMethod.CASH),
        ("VENMO", PaymentMethod.VENMO),
        ("CAPTURED_VENMO", PaymentMethod.VENMO),
        ("CAPTURED", PaymentMethod.CREDIT_CARD),
        ("AUTHORIZED", PaymentMethod.CREDIT_CARD),
        ("BARTER", None),
        ("", None),
    ])
    def test_payment_method(self, status, expected):
        assert classify_payment_method(status) == expected

    @pytest.mark.parametrize("text,expected", [
        ("Needs Approval for Delivery", StatusClass.NEEDS_APPROVAL),
        ("Status Delivered", StatusClass.COMPLETED),
        ("Completed", StatusClass.COMPLETED),
        ("Shipped", StatusClass.COMPLETED),
        ("Pending", StatusClass.PENDING),
        ("Approved for Delivery", StatusClass.PENDING),
        ("Cancelled", StatusClass.UNKNOWN),
        (None, StatusClass.UNKNOWN),
    ])
    def test_status_class(self, text, expected):
        assert classify_order_status(text) == expected

    def test_auto_sync(self):
        assert is_dc_auto_sync("Shipped", "CAPTURED")
        assert is_dc_auto_sync("Donation", "CAPTURED")
        assert not is_dc_auto_sync("Donation", "CASH")
        assert not is_dc_auto_sync("In-Person Delivery", "CAPTURED")
