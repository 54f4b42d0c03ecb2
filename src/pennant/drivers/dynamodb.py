# src/pennant/drivers/dynamodb.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import aioboto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, retry_if_result, stop_after_attempt, wait_fixed

from pennant.core.logging import get_logger
from pennant.kernel.errors import StoreInitializationError
from pennant.kernel.storage import coerce_stored_value

log = get_logger(__name__)

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _marshall(item: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _serializer.serialize(v) for k, v in item.items()}


def _unmarshall(item: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _deserializer.deserialize(v) for k, v in item.items()}


def _error_code(e: ClientError) -> str:
    return (e.response.get("Error") or {}).get("Code", "")


class DynamoDBDatabaseDriver:
    """
    One item per flag: {<feature_name_attribute>: S, <value_attribute>: BOOL}.

    Either pass a ready (already entered) low-level `client`, or an
    `aioboto3.Session` from which a client is opened per call.
    """

    def __init__(
        self,
        session: Optional[aioboto3.Session] = None,
        client: Any = None,
        table_name: str = "feature_flags",
        feature_name_attribute: str = "feature_name",
        value_attribute: str = "value",
        endpoint_url: Optional[str] = None,
        region_name: Optional[str] = None,
        wait_attempts: int = 30,
        wait_delay: float = 1.0,
    ):
        if client is None and session is None:
            session = aioboto3.Session()
        self._client_obj = client
        self._session = session
        self._table_name = table_name
        self._name_attr = feature_name_attribute
        self._value_attr = value_attribute
        self._endpoint_url = endpoint_url
        self._region_name = region_name
        self._wait_attempts = wait_attempts
        self._wait_delay = wait_delay

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[Any]:
        if self._client_obj is not None:
            yield self._client_obj
            return
        async with self._session.client(
            "dynamodb", endpoint_url=self._endpoint_url, region_name=self._region_name
        ) as client:
            yield client

    def _key(self, flag: str) -> Dict[str, Any]:
        return _marshall({self._name_attr: flag})

    # --- FeatureStorageProvider ---------------------------------------------

    async def set(self, flag: str, value: bool) -> None:
        item = {self._name_attr: flag, self._value_attr: bool(value)}
        async with self._client() as client:
            await client.put_item(TableName=self._table_name, Item=_marshall(item))

    async def get(self, flag: str) -> Optional[bool]:
        """Missing item or missing table read as absent; other client errors propagate."""
        async with self._client() as client:
            try:
                resp = await client.get_item(TableName=self._table_name, Key=self._key(flag))
            except ClientError as e:
                if _error_code(e) == "ResourceNotFoundException":
                    log.warning("store(dynamodb) table missing table=%s", self._table_name)
                    return None
                raise
        raw = resp.get("Item")
        if not raw:
            return None
        return coerce_stored_value(_unmarshall(raw).get(self._value_attr))

    async def delete(self, flag: str) -> None:
        async with self._client() as client:
            await client.delete_item(TableName=self._table_name, Key=self._key(flag))

    # --- setup / capabilities -----------------------------------------------

    async def create_table_if_not_exists(self) -> None:
        async with self._client() as client:
            try:
                await client.describe_table(TableName=self._table_name)
                return
            except ClientError as e:
                if _error_code(e) != "ResourceNotFoundException":
                    raise

            await client.create_table(
                TableName=self._table_name,
                KeySchema=[{"AttributeName": self._name_attr, "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": self._name_attr, "AttributeType": "S"}],
                BillingMode="PAY_PER_REQUEST",
            )
            log.info("store(dynamodb) table created table=%s", self._table_name)
            await self._wait_for_table_active(client)

    async def _table_status(self, client: Any) -> Optional[str]:
        resp = await client.describe_table(TableName=self._table_name)
        return (resp.get("Table") or {}).get("TableStatus")

    async def _wait_for_table_active(self, client: Any) -> None:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._wait_attempts),
            wait=wait_fixed(self._wait_delay),
            retry=retry_if_result(lambda status: status != "ACTIVE") | retry_if_exception_type(ClientError),
        )
        try:
            await retrying(self._table_status, client)
        except RetryError as e:
            raise StoreInitializationError(
                f"Table {self._table_name} did not become active within expected time",
                meta={"table": self._table_name, "attempts": self._wait_attempts},
            ) from e

    async def initialize(self) -> None:
        await self.create_table_if_not_exists()

    def is_persistent_store(self) -> bool:
        return True


def create_dynamodb_driver(
    session: Optional[aioboto3.Session] = None,
    *,
    client: Any = None,
    table_name: str = "feature_flags",
    feature_name_attribute: str = "feature_name",
    value_attribute: str = "value",
    endpoint_url: Optional[str] = None,
    region_name: Optional[str] = None,
) -> DynamoDBDatabaseDriver:
    return DynamoDBDatabaseDriver(
        session=session,
        client=client,
        table_name=table_name,
        feature_name_attribute=feature_name_attribute,
        value_attribute=value_attribute,
        endpoint_url=endpoint_url,
        region_name=region_name,
    )
