from __future__ import annotations

import pydantic
import pytest

from core.domain.models import (
    AddressOutcome,
    BatchRequest,
    BatchResult,
    CheckoutStep,
    DeliveryType,
    OutcomeStatus,
)
from fakes import request_payload


class TestBatchRequest:
    def test_parses_wire_names(self):
        request = BatchRequest.model_validate(request_payload())

        assert request.user.username == "bot@example.com"
        assert request.user.password.get_secret_value() == "s3cret"
        assert request.delivery.delivery_type is DeliveryType.DELIVERY
        assert request.delivery.addresses == (101, 102)
        assert request.delivery.band == "TARDE"
        assert request.cart.order_number == "900123"
        assert request.cart.order_id == "o777"
        assert request.payment.payment_method_id == 4
        assert request.payment.card_bank_id == "21"

    def test_options_default_when_missing(self):
        options = BatchRequest.model_validate(request_payload()).options

        assert options.max_retries == 0
        assert options.retry_out_of_stock is False
        assert options.refresh_fallback is False
        assert options.concurrency is None
        assert options.timeout_seconds is None

    def test_options_wire_names(self):
        payload = request_payload(
            opciones={
                "reintentarSinStock": True,
                "maxReintentos": 2,
                "fallbackRefrescoCheckout": True,
                "concurrency": 3,
                "timeoutSegundos": 120,
            }
        )
        options = BatchRequest.model_validate(payload).options

        assert options.retry_out_of_stock is True
        assert options.max_retries == 2
        assert options.refresh_fallback is True
        assert options.concurrency == 3
        assert options.timeout_seconds == 120

    def test_unknown_band_is_not_a_schema_error(self):
        payload = request_payload()
        payload["entrega"]["banda"] = "INVALID"

        assert BatchRequest.model_validate(payload).delivery.band == "INVALID"

    def test_empty_address_list_rejected(self):
        payload = request_payload()
        payload["entrega"]["direcciones"] = []

        with pytest.raises(pydantic.ValidationError):
            BatchRequest.model_validate(payload)

    def test_request_is_immutable(self):
        request = BatchRequest.model_validate(request_payload())

        with pytest.raises(pydantic.ValidationError):
            request.cart = request.cart  # type: ignore[misc]

    def test_password_not_in_repr(self):
        request = BatchRequest.model_validate(request_payload())
        assert "s3cret" not in repr(request)


class TestBatchResult:
    def test_aggregates_in_outcome_order(self):
        outcomes = [
            AddressOutcome.committed(1, "A", attempts=1),
            AddressOutcome.failure(2, "GENERIC_ERROR", step=CheckoutStep.COMMIT_ORDER, attempts=1),
            AddressOutcome.committed(3, "C", attempts=2),
        ]
        result = BatchResult.from_outcomes(outcomes)

        assert result.success == 2
        assert result.failed == 1
        assert result.orders == ["A", "C"]
        assert [o.address_id for o in result.outcomes] == [1, 2, 3]
        assert result.outcomes[1].status is OutcomeStatus.FAILURE

    def test_response_shape(self):
        result = BatchResult.from_outcomes([AddressOutcome.committed(1, "555", attempts=1)])
        assert result.to_response() == {"success": 1, "failed": 0, "orders": ["555"]}
