"""
Unit tests for the pricing service.

The fake provider answers in reverse request order by default, so every
test here also checks that items are matched by key and not by position.
"""

from decimal import Decimal

import pytest

from core.exceptions import CurrencyRateError, PricingError, UpstreamQuoteError, ValidationError
from core.quote_cache import QuoteCache
from models.pricing import PricingItem, ProviderQuoteItem
from modules.quote_lines import group_lines
from modules.sku_resolver import resolve_sku
from services.pricing_service import PricingService, match_quote_items
from services.shipping_service import ShippingService
from tests.conftest import FakeCurrencyProvider, FakeQuoteProvider


FRAME = "GLOBAL-CFPM-16X20"
CANVAS = "GLOBAL-CAN-10x10"


def make_service(provider, currency=None):
    return PricingService(
        provider,
        ShippingService(provider),
        currency_provider=currency or FakeCurrencyProvider(),
        quote_cache=QuoteCache(ttl_seconds=300),
    )


@pytest.fixture
def provider():
    return FakeQuoteProvider(unit_costs={CANVAS: Decimal("40.00")})


@pytest.fixture
def items():
    return [
        PricingItem(f"{FRAME}-3f9a2c1e", 2, {"color": "black"}),
        PricingItem(f"{CANVAS}-a1b2c3d4", 1, {"wrap": "white"}),
    ]


class TestCalculatePricing:

    def test_totals(self, pricing_service, items):
        result = pricing_service.calculate_pricing(items, "US")

        assert result.unit_prices == {0: Decimal("25.00"), 1: Decimal("40.00")}
        assert result.subtotal == Decimal("90.00")
        assert result.shipping == Decimal("9.95")
        assert result.tax == Decimal("7.20")
        assert result.total == Decimal("107.15")
        assert result.currency == "USD"
        assert result.shipping_method == "Standard"
        assert result.estimated_days == 6
        assert not result.converted

    def test_total_is_sum_of_parts(self, pricing_service, items):
        for method in ("Budget", "Standard", "Express"):
            result = pricing_service.calculate_pricing(items, "US", method)

            assert result.total == result.subtotal + result.shipping + result.tax

    def test_untaxed_country(self, pricing_service, items):
        result = pricing_service.calculate_pricing(items, "JP")

        assert result.tax == Decimal("0.00")
        assert result.total == Decimal("99.95")

    def test_reverse_order_items_matched_by_key(self, provider, items):
        provider.reverse = True
        result = make_service(provider).calculate_pricing(items, "US")

        assert result.unit_prices[0] == Decimal("25.00")
        assert result.unit_prices[1] == Decimal("40.00")

    def test_mount_surcharge_lands_on_right_line(self, provider):
        items = [
            PricingItem(f"{FRAME}-3f9a2c1e", 1, {"color": "black"}),
            PricingItem(f"{FRAME}-0d0e0f10", 1, {"color": "black", "mount": "2.4mm", "mountColor": "white"}),
        ]

        result = make_service(provider).calculate_pricing(items, "US")

        assert result.unit_prices == {0: Decimal("25.00"), 1: Decimal("30.00")}

    def test_identical_configurations_requested_once(self, provider):
        items = [
            PricingItem(f"{FRAME}-3f9a2c1e", 2, {"color": "Black"}),
            PricingItem(f"{CANVAS}-a1b2c3d4", 1, {"wrap": "white"}),
            PricingItem(f"{FRAME}-0d0e0f10", 1, {"frameColour": "black"}),
        ]

        result = make_service(provider).calculate_pricing(items, "US")

        unit_call = provider.calls[0]
        assert [(line.sku, line.copies) for line in unit_call["lines"]] == [(FRAME, 1), (CANVAS, 1)]
        assert result.unit_prices[0] == result.unit_prices[2] == Decimal("25.00")
        assert result.subtotal == Decimal("115.00")

    def test_pricing_and_shipping_describe_items_identically(self, provider, items):
        make_service(provider).calculate_pricing(items, "US")

        unit_call, shipping_call = provider.calls
        assert [(line.sku, line.attributes) for line in unit_call["lines"]] == [
            (line.sku, line.attributes) for line in shipping_call["lines"]
        ]
        assert [line.copies for line in shipping_call["lines"]] == [2, 1]

    def test_cache_hit_skips_unit_cost_request(self, provider, items):
        service = make_service(provider)

        service.calculate_pricing(items, "US")
        assert len(provider.calls) == 2
        service.calculate_pricing(items, "US")

        # Only the shipping request is repeated
        assert len(provider.calls) == 3

    def test_cache_is_per_destination(self, provider, items):
        service = make_service(provider)

        service.calculate_pricing(items, "US")
        service.calculate_pricing(items, "GB")

        assert len(provider.calls) == 4

    def test_provider_extra_attributes_still_match(self, items):
        provider = FakeQuoteProvider(unit_costs={CANVAS: Decimal("40.00")}, echo="extra")

        result = make_service(provider).calculate_pricing(items, "US")

        assert result.unit_prices == {0: Decimal("25.00"), 1: Decimal("40.00")}

    def test_provider_without_attribute_echo_still_matches(self, items):
        provider = FakeQuoteProvider(unit_costs={CANVAS: Decimal("40.00")}, echo="none")

        result = make_service(provider).calculate_pricing(items, "US")

        assert result.unit_prices == {0: Decimal("25.00"), 1: Decimal("40.00")}


class TestCurrencyConversion:

    def test_convert_to_eur(self, pricing_service, items):
        result = pricing_service.calculate_pricing(items, "US", output_currency="eur")

        assert result.currency == "EUR"
        assert result.unit_prices == {0: Decimal("12.50"), 1: Decimal("20.00")}
        assert result.subtotal == Decimal("45.00")
        assert result.shipping == Decimal("4.98")
        assert result.tax == Decimal("3.60")
        assert result.total == Decimal("53.58")
        assert result.original_currency == "USD"
        assert result.original_total == Decimal("107.15")
        assert result.exchange_rate == Decimal("0.5")

    def test_zero_decimal_currency(self, pricing_service, items):
        result = pricing_service.calculate_pricing(items, "US", output_currency="JPY")

        assert result.unit_prices == {0: Decimal("3750"), 1: Decimal("6000")}
        assert result.shipping == Decimal("1493")
        assert result.total == result.subtotal + result.shipping + result.tax

    def test_subtotal_equals_rounded_unit_prices_times_quantity(self):
        provider = FakeQuoteProvider(default_unit_cost=Decimal("12.345"))
        items = [PricingItem(f"{FRAME}-3f9a2c1e", 3, {"color": "black"})]

        result = make_service(provider).calculate_pricing(items, "US", output_currency="GBP")

        assert result.unit_prices[0] == Decimal("9.88")
        assert result.subtotal == Decimal("29.64")
        assert result.subtotal == sum(
            result.unit_prices[i] * item.quantity for i, item in enumerate(items)
        )

    def test_same_currency_is_not_converted(self, pricing_service, currency, items):
        result = pricing_service.calculate_pricing(items, "US", output_currency="USD")

        assert not result.converted
        assert currency.calls == 0

    def test_rate_failure_becomes_pricing_error(self, pricing_service, currency, items):
        currency.error = CurrencyRateError("Exchange rates unavailable")

        with pytest.raises(PricingError) as exc_info:
            pricing_service.calculate_pricing(items, "US", output_currency="EUR")

        assert exc_info.value.status_code == 503

    def test_unsupported_currency_is_validation_error(self, pricing_service, items):
        with pytest.raises(ValidationError):
            pricing_service.calculate_pricing(items, "US", output_currency="XYZ")

    def test_shipping_in_other_currency_is_converted_to_items_currency(self):
        provider = FakeQuoteProvider(currency="GBP", shipping_currency="USD")
        items = [PricingItem(f"{FRAME}-3f9a2c1e", 2, {"color": "black"})]

        result = make_service(provider).calculate_pricing(items, "GB")

        assert result.currency == "GBP"
        assert result.subtotal == Decimal("50.00")
        # 9.95 USD at 0.8 GBP per USD
        assert result.shipping == Decimal("7.96")
        assert result.tax == Decimal("10.00")
        assert result.total == Decimal("67.96")
        assert not result.converted

    def test_shipping_currency_without_rates_fails(self):
        provider = FakeQuoteProvider(currency="GBP", shipping_currency="USD")
        service = PricingService(provider, ShippingService(provider), quote_cache=QuoteCache())

        with pytest.raises(PricingError) as exc_info:
            service.calculate_pricing([PricingItem(FRAME, 1, {"color": "black"})], "GB")

        assert exc_info.value.status_code == 503


class TestFailures:

    def test_missing_line_fails_whole_calculation(self, provider, items):
        provider.drop_skus = {CANVAS.lower()}

        with pytest.raises(PricingError) as exc_info:
            make_service(provider).calculate_pricing(items, "US")

        assert exc_info.value.status_code == 502
        assert [line["index"] for line in exc_info.value.failed_lines] == [1]
        assert exc_info.value.details["failed_lines"][0]["sku"] == CANVAS

    def test_partial_result_is_cached_for_returned_lines_only(self, provider, items):
        provider.drop_skus = {CANVAS.lower()}
        service = make_service(provider)
        with pytest.raises(PricingError):
            service.calculate_pricing(items, "US")

        provider.drop_skus = set()
        result = service.calculate_pricing(items, "US")

        assert [line.sku for line in provider.calls[1]["lines"]] == [CANVAS]
        assert result.unit_prices[1] == Decimal("40.00")

    def test_upstream_client_error_keeps_status(self, provider, items):
        provider.error = UpstreamQuoteError("Invalid attribute", upstream_status=400, status_code=400)

        with pytest.raises(PricingError) as exc_info:
            make_service(provider).calculate_pricing(items, "US")

        assert exc_info.value.status_code == 400
        assert exc_info.value.details["upstream_status"] == 400

    def test_upstream_outage(self, provider, items):
        provider.error = UpstreamQuoteError("Provider unavailable", upstream_status=503, retryable=True)

        with pytest.raises(PricingError) as exc_info:
            make_service(provider).calculate_pricing(items, "US")

        assert exc_info.value.status_code == 502

    def test_unavailable_shipping_method(self, pricing_service, items):
        with pytest.raises(PricingError) as exc_info:
            pricing_service.calculate_pricing(items, "US", "Overnight")

        assert exc_info.value.status_code == 422

    @pytest.mark.parametrize("items,country,field", [
        ([], "US", "items"),
        ([PricingItem(FRAME, 0)], "US", "items[0].quantity"),
        ([PricingItem(FRAME, True)], "US", "items[0].quantity"),
        ([PricingItem("", 1)], "US", "items[0].sku"),
        ([PricingItem(FRAME, 1)], "USA", "destinationCountry"),
    ])
    def test_validation(self, pricing_service, provider, items, country, field):
        with pytest.raises(ValidationError) as exc_info:
            pricing_service.calculate_pricing(items, country)

        assert field in exc_info.value.field_errors
        assert provider.calls == []


class TestMatchQuoteItems:

    def test_unknown_item_rejected(self):
        groups = list(group_lines([PricingItem(FRAME, 1, {"color": "black"})]).values())
        stray = ProviderQuoteItem("GLOBAL-MUG-11OZ", 1, Decimal("9"), "USD", {})

        with pytest.raises(UpstreamQuoteError):
            match_quote_items(groups, [stray])

    def test_conflicting_costs_rejected(self):
        groups = list(group_lines([PricingItem(FRAME, 1, {"color": "black"})]).values())
        first = ProviderQuoteItem(FRAME, 1, Decimal("25"), "USD", {"color": "Black"})
        second = ProviderQuoteItem(FRAME, 1, Decimal("26"), "USD", {"color": "Black"})

        with pytest.raises(UpstreamQuoteError):
            match_quote_items(groups, [first, second])

    def test_ambiguous_bare_echo_rejected(self):
        groups = list(group_lines([
            PricingItem(FRAME, 1, {"color": "black"}),
            PricingItem(FRAME, 1, {"color": "white"}),
        ]).values())
        bare = ProviderQuoteItem(FRAME, 1, Decimal("25"), "USD", {})

        with pytest.raises(UpstreamQuoteError):
            match_quote_items(groups, [bare])


class TestValidatePrices:

    def test_reports_drifted_prices(self, pricing_service):
        items = [
            PricingItem(f"{FRAME}-3f9a2c1e", 1, {"color": "black"}, price_hint=Decimal("30.00")),
            PricingItem(f"{FRAME}-0d0e0f10", 1, {"color": "white"}, price_hint=Decimal("25.50")),
            PricingItem(f"{FRAME}-11223344", 1, {"color": "natural"}),
        ]

        result = pricing_service.validate_prices(items, "US")

        assert not result.valid
        assert [m.index for m in result.mismatches] == [0]
        assert result.mismatches[0].live_price == Decimal("25.00")
        assert result.to_dict()["mismatches"][0]["differencePercent"] == 20.0

    def test_all_current(self, pricing_service):
        items = [PricingItem(FRAME, 1, {"color": "black"}, price_hint=Decimal("25.00"))]

        assert pricing_service.validate_prices(items, "US").valid


class TestCanvasScenario:

    def test_single_canvas_line_end_to_end(self, pricing_service, provider):
        sku = resolve_sku("global-can-8x20", "abcd1234-5678-90ab-cdef-1234567890ab")
        items = [PricingItem(sku, 2, {
            "wrap": "Black", "edge": "38mm", "glaze": "none", "mount": "none", "mountColor": "white",
        })]

        result = pricing_service.calculate_pricing(items, "US")

        assert sku == "global-can-8x20-abcd1234"
        unit_cost = result.unit_prices[0]
        assert unit_cost == Decimal("25.00")
        assert result.subtotal == 2 * unit_cost
        assert result.shipping >= 0
        assert result.total == result.subtotal + result.shipping + result.tax
        assert provider.calls[0]["lines"][0].sku == "global-can-8x20"
        assert provider.calls[0]["lines"][0].attributes == {"edge": "38mm", "wrap": "black"}
