"""REST client for the billing platform's payment API."""

import logging
from decimal import Decimal
from typing import Optional

import httpx

from transfer_gateway.billing.base import (
    BillingPlatform,
    CallContext,
    Payment,
    PaymentTransaction,
    TransactionStatus,
)
from transfer_gateway.config import settings
from transfer_gateway.engine.errors import BillingApiError

logger = logging.getLogger("transfer_gateway.billing")


class HttpBillingPlatform(BillingPlatform):
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.billing_api_url,
            timeout=settings.http_timeout_seconds,
            auth=(settings.billing_username, settings.billing_password),
            headers={
                "Accept": "application/json",
                "X-Killbill-ApiKey": api_key if api_key is not None else settings.billing_api_key,
                "X-Killbill-ApiSecret": api_secret if api_secret is not None else settings.billing_api_secret,
            },
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_payment(self, kb_payment_id: str, context: CallContext) -> Payment:
        try:
            response = await self._http.get(
                f"/1.0/kb/payments/{kb_payment_id}",
                params={"withPluginInfo": "false"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            # Surfaced so the webhook sender retries
            raise BillingApiError(f"Failed to retrieve kbPaymentId='{kb_payment_id}': {e}") from e

        data = response.json()
        return Payment(
            id=data["paymentId"],
            account_id=data["accountId"],
            transactions=[
                PaymentTransaction(
                    id=tx["transactionId"],
                    transaction_type=tx.get("transactionType", ""),
                    status=TransactionStatus(tx["status"]),
                    amount=Decimal(str(tx["amount"])) if tx.get("amount") is not None else None,
                    currency=tx.get("currency"),
                )
                for tx in data.get("transactions", [])
            ],
        )

    async def notify_pending_transaction_of_state_changed(
        self,
        kb_account_id: str,
        kb_transaction_id: str,
        is_success: bool,
        context: CallContext,
    ) -> None:
        status = TransactionStatus.SUCCESS if is_success else TransactionStatus.PAYMENT_FAILURE
        try:
            response = await self._http.post(
                f"/1.0/kb/paymentTransactions/{kb_transaction_id}",
                json={"transactionId": kb_transaction_id, "status": status.value},
                headers={"X-Killbill-CreatedBy": settings.billing_created_by},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BillingApiError(
                f"Failed to transition pending transaction kbPaymentTransactionId='{kb_transaction_id}': {e}"
            ) from e
        logger.info(
            "Transaction %s of account %s marked %s",
            kb_transaction_id,
            kb_account_id,
            status.value,
        )
