"""
Tests for the error taxonomy.
"""

import pytest

from pos_core.core.exceptions import (
    ConflictError,
    InternalError,
    NotFoundError,
    PosCoreError,
    ValidationError,
)
from pos_core.services.orders.repository import DuplicateOrderNumberError
from pos_core.services.orders.state_machine import (
    ConcurrentModificationError,
    StateTransitionError,
)


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error_cls", [ValidationError, NotFoundError, ConflictError]
    )
    def test_message_and_context(self, error_cls) -> None:
        error = error_cls("order not found", order_id="abc")

        assert isinstance(error, PosCoreError)
        assert str(error) == "order not found"
        assert error.message == "order not found"
        assert error.context == {"order_id": "abc"}

    def test_internal_error_message_is_generic(self) -> None:
        error = InternalError(operation="add_payment", order_id="abc")

        assert error.message == "internal error"
        assert error.context["operation"] == "add_payment"

    def test_conflict_subclasses(self) -> None:
        assert issubclass(StateTransitionError, ConflictError)
        assert issubclass(ConcurrentModificationError, ConflictError)
        assert issubclass(DuplicateOrderNumberError, ConflictError)
