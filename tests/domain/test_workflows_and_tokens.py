"""
Tests for the declared order/receipt workflows and confirmation tokens.
"""

import hashlib
from uuid import uuid4

import pytest

from distribution_kernel.domain.dtos import OrderStatus, ReceiptStatus
from distribution_kernel.domain.tokens import build_link, generate_token, hash_token
from distribution_kernel.domain.workflow import (
    ORDER_WORKFLOW,
    RECEIPT_WORKFLOW,
    Transition,
    Workflow,
    require_transition,
)


class TestWorkflows:

    def test_order_workflow_actions(self):
        assert ORDER_WORKFLOW.actions_from(OrderStatus.PENDING.value) == ("allocate", "cancel")
        assert ORDER_WORKFLOW.actions_from(OrderStatus.DELIVERED.value) == ()

    def test_delivered_orders_cannot_be_cancelled(self):
        with pytest.raises(ValueError, match="no 'cancel' transition"):
            require_transition(
                ORDER_WORKFLOW, OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value, "cancel",
            )

    def test_receipts_never_return_to_pending(self):
        for status in ReceiptStatus:
            assert RECEIPT_WORKFLOW.find(status.value, ReceiptStatus.PENDING.value, "confirm") is None

    def test_confirmed_receipts_are_not_adjustable(self):
        assert RECEIPT_WORKFLOW.actions_from(ReceiptStatus.CONFIRMED.value) == ()

    def test_workflow_rejects_undeclared_states(self):
        with pytest.raises(ValueError):
            Workflow(
                name="broken",
                description="",
                initial_state="a",
                states=("a",),
                transitions=(Transition("a", "b", "go"),),
                terminal_states=(),
            )


class TestTokens:

    def test_tokens_are_unique_and_url_safe(self):
        tokens = {generate_token() for _ in range(200)}
        assert len(tokens) == 200
        assert all(t.replace("-", "").replace("_", "").isalnum() for t in tokens)

    def test_short_tokens_are_refused(self):
        with pytest.raises(ValueError):
            generate_token(8)

    def test_hash_is_sha256_hex(self):
        assert hash_token("abc") == hashlib.sha256(b"abc").hexdigest()

    @pytest.mark.parametrize(
        "base,path",
        [
            ("https://merenda.example.org", "/confirmacao-recebimento"),
            ("https://merenda.example.org/", "confirmacao-recebimento/"),
            ("https://merenda.example.org/", "/confirmacao-recebimento/"),
        ],
    )
    def test_link_joins_with_single_slashes(self, base, path):
        link = build_link(uuid4(), "RB-2024-000001", "tok123", base, path)
        assert link.url == "https://merenda.example.org/confirmacao-recebimento/tok123"
        assert link.qr_payload == link.url

    def test_token_stays_out_of_repr(self):
        link = build_link(uuid4(), "RB-2024-000001", "s3cr3t-token", "http://x", "/c")
        assert "s3cr3t-token" not in repr(link)
