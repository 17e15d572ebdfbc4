"""Tests for topic and transfer-status mapping."""

from transfer_gateway.engine.status_mapper import (
    billing_status_for_topic,
    is_failed,
    plugin_status_for_transfer,
    transfer_status_for_topic,
)
from transfer_gateway.models.enums import PaymentPluginStatus, TransferStatus


class TestBillingStatus:
    def test_completed_topics_are_processed(self):
        for topic in ("account_transfer_completed", "customer_transfer_completed"):
            assert billing_status_for_topic(topic) == PaymentPluginStatus.PROCESSED, topic

    def test_failed_and_cancelled_topics_are_errors(self):
        for topic in (
            "account_transfer_failed",
            "customer_transfer_failed",
            "account_transfer_cancelled",
            "customer_transfer_cancelled",
        ):
            assert billing_status_for_topic(topic) == PaymentPluginStatus.ERROR, topic

    def test_bank_leg_topics_do_not_settle_a_transaction(self):
        for topic in (
            "customer_bank_transfer_completed",
            "customer_bank_transfer_failed",
            "customer_bank_transfer_cancelled",
            "customer_bank_transfer_created",
        ):
            assert billing_status_for_topic(topic) is None, topic

    def test_created_topic_has_no_billing_status(self):
        assert billing_status_for_topic("customer_transfer_created") is None

    def test_unrelated_topic_is_ignored(self):
        assert billing_status_for_topic("customer_created") is None
        assert billing_status_for_topic("customer_funding_source_verified") is None

    def test_topic_case_is_ignored(self):
        assert billing_status_for_topic("CUSTOMER_TRANSFER_FAILED") == PaymentPluginStatus.ERROR

    def test_missing_topic(self):
        assert billing_status_for_topic(None) is None
        assert billing_status_for_topic("") is None


class TestTransferStatusMirror:
    def test_finer_grained_than_billing_status(self):
        assert transfer_status_for_topic("customer_transfer_failed") == TransferStatus.FAILED
        assert transfer_status_for_topic("customer_transfer_cancelled") == TransferStatus.CANCELLED
        assert transfer_status_for_topic("account_transfer_completed") == TransferStatus.PROCESSED
        assert transfer_status_for_topic("customer_transfer_created") == TransferStatus.PENDING
        assert transfer_status_for_topic("customer_transfer_reclaimed") == TransferStatus.RECLAIMED

    def test_unrelated_topic(self):
        assert transfer_status_for_topic("customer_created") is None


class TestPluginStatus:
    def test_known_statuses(self):
        assert plugin_status_for_transfer("pending") == PaymentPluginStatus.PENDING
        assert plugin_status_for_transfer("processed") == PaymentPluginStatus.PROCESSED
        assert plugin_status_for_transfer("failed") == PaymentPluginStatus.ERROR
        assert plugin_status_for_transfer("reclaimed") == PaymentPluginStatus.ERROR
        assert plugin_status_for_transfer("cancelled") == PaymentPluginStatus.CANCELED

    def test_unknown_status_is_undefined(self):
        assert plugin_status_for_transfer("on_hold") == PaymentPluginStatus.UNDEFINED
        assert plugin_status_for_transfer(None) == PaymentPluginStatus.UNDEFINED

    def test_failed_check_is_case_insensitive(self):
        assert is_failed("FAILED")
        assert is_failed("failed")
        assert not is_failed("pending")
