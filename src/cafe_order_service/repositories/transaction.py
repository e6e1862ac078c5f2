"""Scoped DynamoDB write transactions.

Repositories stage writes on a DynamoTransaction and nothing reaches DynamoDB
until commit. The transaction() context manager only commits when its block
exits normally, so any exception raised while staging discards every staged
write. On commit DynamoDB applies all actions or none of them.

Each staged action carries an error factory that turns a failed condition on
that action into a domain error (e.g. a failed stock condition becomes
InsufficientStockError).
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any

from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import BotoCoreError, ClientError
from mypy_boto3_dynamodb.client import DynamoDBClient

from cafe_order_service.models.errors import (
    OrderServiceError,
    StorageError,
    TransactionConflictError,
)

logger = logging.getLogger(__name__)

# DynamoDB rejects TransactWriteItems requests with more actions than this
MAX_TRANSACTION_ACTIONS = 100

_TYPE_DESCRIPTORS = frozenset({"S", "N", "B", "SS", "NS", "BS", "NULL", "BOOL", "M", "L"})

ErrorFactory = Callable[[dict[str, Any] | None], OrderServiceError]

# Service errors (ClientError) and delivery failures such as timeouts (BotoCoreError)
DYNAMODB_ERRORS = (ClientError, BotoCoreError)


def is_condition_failure(error: Exception) -> bool:
    """Whether a single-item write was rejected by its ConditionExpression."""
    return (
        isinstance(error, ClientError)
        and error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"
    )


class ActionKind(str, Enum):
    """What a staged action writes or checks."""

    ORDER = "order"
    LINE_ITEM = "line_item"
    MENU_ITEM = "menu_item"
    MENU_ITEM_CHECK = "menu_item_check"
    INVENTORY_ITEM = "inventory_item"
    INVENTORY_CHECK = "inventory_check"
    INVENTORY_DECREMENT = "inventory_decrement"


@dataclass
class StagedAction:
    """One TransactItems entry plus the information needed to explain its failure.

    Attributes:
        kind: What the action writes or checks
        ref: Identifier of the record the action targets
        request: The TransactItems entry sent to DynamoDB
        on_condition_failed: Builds the domain error when the condition fails
    """

    kind: ActionKind
    ref: str
    request: dict[str, Any]
    on_condition_failed: ErrorFactory | None = None


def _condition_args(
    condition: str | None,
    names: dict[str, str] | None,
    values: dict[str, Any] | None,
) -> dict[str, Any]:
    args: dict[str, Any] = {}
    if condition:
        args["ConditionExpression"] = condition
        args["ReturnValuesOnConditionCheckFailure"] = "ALL_OLD"
    if names:
        args["ExpressionAttributeNames"] = names
    if values:
        args["ExpressionAttributeValues"] = values
    return args


class DynamoTransaction:
    """Collects writes and commits them with a single TransactWriteItems call."""

    def __init__(self, client: DynamoDBClient) -> None:
        """Initialize an empty transaction.

        Args:
            client: DynamoDB client (use resource.meta.client so native Python
                values are serialized automatically)
        """
        self.client = client
        self.actions: list[StagedAction] = []
        self._deserializer = TypeDeserializer()

    def __len__(self) -> int:
        return len(self.actions)

    def put(
        self,
        table_name: str,
        item: dict[str, Any],
        kind: ActionKind,
        ref: str,
        condition: str | None = None,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
        on_condition_failed: ErrorFactory | None = None,
    ) -> None:
        """Stage a Put action."""
        request = {"Put": {"TableName": table_name, "Item": item, **_condition_args(condition, names, values)}}
        self.actions.append(StagedAction(kind, ref, request, on_condition_failed))

    def update(
        self,
        table_name: str,
        key: dict[str, Any],
        update_expression: str,
        kind: ActionKind,
        ref: str,
        condition: str | None = None,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
        on_condition_failed: ErrorFactory | None = None,
    ) -> None:
        """Stage an Update action."""
        request = {
            "Update": {
                "TableName": table_name,
                "Key": key,
                "UpdateExpression": update_expression,
                **_condition_args(condition, names, values),
            }
        }
        self.actions.append(StagedAction(kind, ref, request, on_condition_failed))

    def delete(
        self,
        table_name: str,
        key: dict[str, Any],
        kind: ActionKind,
        ref: str,
        condition: str | None = None,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
        on_condition_failed: ErrorFactory | None = None,
    ) -> None:
        """Stage a Delete action."""
        request = {"Delete": {"TableName": table_name, "Key": key, **_condition_args(condition, names, values)}}
        self.actions.append(StagedAction(kind, ref, request, on_condition_failed))

    def condition_check(
        self,
        table_name: str,
        key: dict[str, Any],
        condition: str,
        kind: ActionKind,
        ref: str,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
        on_condition_failed: ErrorFactory | None = None,
    ) -> None:
        """Stage a ConditionCheck action that writes nothing."""
        request = {
            "ConditionCheck": {
                "TableName": table_name,
                "Key": key,
                **_condition_args(condition, names, values),
            }
        }
        self.actions.append(StagedAction(kind, ref, request, on_condition_failed))

    def commit(self) -> None:
        """Send all staged actions as one atomic TransactWriteItems call.

        Raises:
            OrderServiceError: Domain error of the first action whose condition failed
            TransactionConflictError: A concurrent transaction touched the same items
            StorageError: Any other DynamoDB failure
        """
        if not self.actions:
            return

        if len(self.actions) > MAX_TRANSACTION_ACTIONS:
            raise StorageError(
                f"Transaction has {len(self.actions)} actions, limit is {MAX_TRANSACTION_ACTIONS}"
            )

        try:
            self.client.transact_write_items(TransactItems=[a.request for a in self.actions])
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "TransactionCanceledException":
                raise self._cancellation_error(e) from e
            logger.error(f"Transaction failed: {e}")  # pragma: no cover
            raise StorageError(f"Transaction failed: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Transaction not delivered: {e}")  # pragma: no cover
            raise StorageError(f"Transaction not delivered: {e}") from e

    def _cancellation_error(self, error: ClientError) -> OrderServiceError:
        """Map DynamoDB cancellation reasons to the error of the failing action."""
        reasons = error.response.get("CancellationReasons", [])
        conflict = False

        for action, reason in zip(self.actions, reasons, strict=False):
            code = reason.get("Code", "None")
            if code == "ConditionalCheckFailed":
                old_item = self._deserialize(reason.get("Item"))
                if action.on_condition_failed is not None:
                    return action.on_condition_failed(old_item)
                return StorageError(f"Condition failed on {action.kind.value} {action.ref}")
            if code == "TransactionConflict":
                conflict = True
            elif code not in ("None", ""):
                logger.error(
                    f"Transaction action {action.kind.value} {action.ref} failed with {code}"
                )  # pragma: no cover
                return StorageError(f"Transaction cancelled: {code}")

        if conflict:
            return TransactionConflictError("Transaction conflicted with a concurrent writer")

        logger.error(f"Transaction cancelled without reasons: {error}")  # pragma: no cover
        return StorageError("Transaction cancelled")

    def _deserialize(self, item: dict[str, Any] | None) -> dict[str, Any] | None:
        """Convert a cancellation reason item from wire format to Python values.

        Error responses bypass boto3's resource-level transformation, so the
        item usually arrives as raw AttributeValues.
        """
        if not item:
            return None

        result: dict[str, Any] = {}
        for name, value in item.items():
            if isinstance(value, dict) and len(value) == 1 and next(iter(value)) in _TYPE_DESCRIPTORS:
                result[name] = self._deserializer.deserialize(value)
            else:
                result[name] = value
        return result


@contextmanager
def transaction(client: DynamoDBClient) -> Iterator[DynamoTransaction]:
    """Open a transaction that commits only if the block completes.

    Example:
        with transaction(client) as tx:
            tx.put(...)
            tx.update(...)
        # committed here; an exception inside the block discards everything

    Args:
        client: DynamoDB client used for the commit

    Yields:
        DynamoTransaction to stage writes on
    """
    tx = DynamoTransaction(client)
    yield tx
    tx.commit()
