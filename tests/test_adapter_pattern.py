import unittest
from typing import Protocol
from unittest.mock import MagicMock

from autowire import Container


class Contains:  # noqa: PLW1641
    def __init__(self, substring):
        self.substring = substring

    def __repr__(self):
        return f"Contains({self.substring!r})"

    def __eq__(self, other):
        return isinstance(other, str) and self.substring in other


class PaymentClient(Protocol):
    def charge(self, order_id: str, amount_cents: int) -> None: ...


class InfoLogger(Protocol):
    def info(self, msg: object, *args: object) -> None: ...


class NullLogger:
    def info(self, msg: object, *args: object) -> None:
        pass


class StripeSdk:
    def pay(self, amount_usd: float, reference: str) -> bool:
        return True


class StripeAdapter:
    def __init__(self, sdk: StripeSdk, logger: InfoLogger, usd_per_cent: float = 0.01) -> None:
        self._logger = logger
        self._sdk = sdk
        self._usd_per_cent = usd_per_cent

    def charge(self, order_id: str, amount_cents: int) -> None:
        self._logger.info("adapting to stripe sdk api")
        amount_usd = amount_cents * self._usd_per_cent
        ok = self._sdk.pay(amount_usd, reference=order_id)
        if not ok:
            msg = "Stripe payment failed"
            raise RuntimeError(msg)


class Checkout:
    def __init__(self, client: PaymentClient) -> None:
        self._client = client

    def complete(self, order_id: str, amount_cents: int, logger: InfoLogger) -> str:
        self._client.charge(order_id, amount_cents)
        logger.info("checkout %s complete", order_id)
        return order_id


class TestWiringAdapterThirdPartySDK(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.cont.bind(PaymentClient, StripeAdapter)
        self.stripe_sdk = StripeSdk()
        self.stripe_sdk.pay = MagicMock(wraps=self.stripe_sdk.pay)
        self.cont.instance(StripeSdk, self.stripe_sdk)
        self.logger = NullLogger()
        self.logger.info = MagicMock(wraps=self.logger.info)
        self.cont.instance(InfoLogger, self.logger)

    def test_adapter_calls_adaptee(self):
        client: PaymentClient = self.cont.get(PaymentClient, {"usd_per_cent": 0.0125})
        client.charge("order-123", 5000)

        assert self.stripe_sdk.pay.call_count == 1
        assert self.stripe_sdk.pay.call_args[0][0] == 0.0125 * 5000
        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-123"

        assert self.logger.info.call_args[0][0] == Contains("stripe sdk")

    def test_recorded_rate_applies_to_alias(self):
        self.cont.arg(StripeAdapter, {"usd_per_cent": 0.5})

        self.cont.get(PaymentClient).charge("order-7", 100)

        assert self.stripe_sdk.pay.call_args[0][0] == 50.0

    def test_call_checkout_method_with_injected_logger(self):
        checkout = self.cont.get(Checkout)

        result = self.cont.call((checkout, "complete"), ["order-9", 250])

        assert result == "order-9"
        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-9"
        assert self.logger.info.call_args[0][0] == Contains("checkout")


class TestAutoWiringAdapterThirdPartySDK(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.cont.bind(PaymentClient, StripeAdapter)
        self.cont.bind(InfoLogger, NullLogger)

    def test_adapter_is_autowired(self):
        client = self.cont.get(PaymentClient, {"usd_per_cent": 0.0125})

        assert isinstance(client, StripeAdapter)
        assert isinstance(client._sdk, StripeSdk)  # noqa: SLF001
        assert isinstance(client._logger, NullLogger)  # noqa: SLF001
