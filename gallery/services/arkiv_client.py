"""
Arkiv Query Client
==================

Thin async client for the Arkiv JSON-RPC query endpoint.

The remote store only understands:
- Attribute predicates (=, >, >=, <, <=) joined with AND
- Owner scoping
- A page size limit
- Optional ordering by a numeric/string attribute
- A forward-only cursor (has_next_page / next)

Usage mirrors the query builder of the JS SDK:

    result = await client.build_query() \\
        .where(eq("type", "image")) \\
        .where(gt("id", 100)) \\
        .owned_by(owner) \\
        .with_attributes(True) \\
        .with_payload(False) \\
        .limit(50) \\
        .fetch()

    while result.has_next_page():
        await result.next()
"""

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

logger = logging.getLogger(__name__)

AttributeValue = Union[str, int]


class ArkivQueryError(Exception):
    """Raised when the remote store cannot be queried"""


@dataclass(frozen=True)
class Predicate:
    """Single attribute comparison, e.g. id > 100"""
    attribute: str
    op: str
    value: AttributeValue

    def render(self) -> str:
        if isinstance(self.value, str):
            return f"{self.attribute} {self.op} {json.dumps(self.value)}"
        return f"{self.attribute} {self.op} {self.value}"


def eq(attribute: str, value: AttributeValue) -> Predicate:
    return Predicate(attribute, "=", value)


def gt(attribute: str, value: int) -> Predicate:
    return Predicate(attribute, ">", value)


def gte(attribute: str, value: int) -> Predicate:
    return Predicate(attribute, ">=", value)


def lt(attribute: str, value: int) -> Predicate:
    return Predicate(attribute, "<", value)


def lte(attribute: str, value: int) -> Predicate:
    return Predicate(attribute, "<=", value)


@dataclass(frozen=True)
class OrderBy:
    attribute: str
    numeric: bool = True
    descending: bool = True


@dataclass(frozen=True)
class QuerySpec:
    """Everything the remote store needs to run one query"""
    predicates: Tuple[Predicate, ...] = ()
    owner: Optional[str] = None
    include_attributes: bool = True
    include_payload: bool = False
    page_size: int = 50
    order_by: Optional[OrderBy] = None

    def to_query_string(self) -> str:
        """Render predicates in the Arkiv query language"""
        parts = [predicate.render() for predicate in self.predicates]
        if self.owner:
            parts.append(f"$owner = {self.owner}")
        return " && ".join(parts)


@dataclass
class Attribute:
    key: str
    value: AttributeValue


@dataclass
class Entity:
    """Raw entity as returned by the remote store"""
    key: str
    attributes: List[Attribute] = field(default_factory=list)
    payload: Optional[bytes] = None


@dataclass
class QueryPage:
    """One page of entities plus the cursor to the next page (if any)"""
    entities: List[Entity]
    cursor: Optional[str] = None


class QueryResult:
    """
    Live forward-only cursor over a remote query

    `entities` always holds the current page. Calling `next()` replaces
    it with the following page. A closed result reports no further pages.
    """

    def __init__(self, client: "ArkivClient", spec: QuerySpec, page: QueryPage):
        self._client = client
        self.spec = spec
        self.entities: List[Entity] = page.entities
        self._next_cursor = page.cursor
        self.page_number = 1
        self.closed = False

    def has_next_page(self) -> bool:
        return not self.closed and bool(self._next_cursor)

    async def next(self) -> None:
        """Advance to the next page"""
        if not self.has_next_page():
            raise ArkivQueryError("No further pages for this query")

        page = await self._client.execute(self.spec, cursor=self._next_cursor)
        self.entities = page.entities
        self._next_cursor = page.cursor
        self.page_number += 1

    def close(self) -> None:
        """Release the buffered page and the remote cursor"""
        self.closed = True
        self.entities = []
        self._next_cursor = None


class QueryBuilder:
    """Fluent builder producing a QuerySpec, executed with fetch()"""

    def __init__(self, client: "ArkivClient"):
        self._client = client
        self._spec = QuerySpec()

    def where(self, predicate: Predicate) -> "QueryBuilder":
        self._spec = replace(self._spec, predicates=self._spec.predicates + (predicate,))
        return self

    def owned_by(self, owner: str) -> "QueryBuilder":
        self._spec = replace(self._spec, owner=owner)
        return self

    def with_attributes(self, enabled: bool = True) -> "QueryBuilder":
        self._spec = replace(self._spec, include_attributes=enabled)
        return self

    def with_payload(self, enabled: bool = True) -> "QueryBuilder":
        self._spec = replace(self._spec, include_payload=enabled)
        return self

    def limit(self, page_size: int) -> "QueryBuilder":
        self._spec = replace(self._spec, page_size=page_size)
        return self

    def order_by(self, attribute: str, numeric: bool = True, descending: bool = True) -> "QueryBuilder":
        self._spec = replace(self._spec, order_by=OrderBy(attribute, numeric, descending))
        return self

    @property
    def spec(self) -> QuerySpec:
        return self._spec

    async def fetch(self) -> QueryResult:
        page = await self._client.execute(self._spec)
        return QueryResult(self._client, self._spec, page)


class ArkivClient:
    """
    Async JSON-RPC client for an Arkiv node

    Features:
    - Query builder with forward cursor paging
    - Point lookup of a single entity by key
    - Every transport/RPC failure surfaces as ArkivQueryError
    """

    QUERY_METHOD = "arkiv_query"

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize Arkiv client

        Args:
            rpc_url: JSON-RPC endpoint of the Arkiv node
            timeout: Request timeout in seconds
            http_client: Optional preconfigured httpx client (tests)
        """
        self.rpc_url = rpc_url
        self.client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"}
        )
        self._request_id = 0
        self.stats = {
            'requests': 0,
            'errors': 0
        }

    def build_query(self) -> QueryBuilder:
        return QueryBuilder(self)

    async def execute(self, spec: QuerySpec, cursor: Optional[str] = None) -> QueryPage:
        """
        Run one page of a query

        Args:
            spec: Query to run
            cursor: Cursor returned by the previous page, None for the first

        Returns:
            QueryPage with entities and the next cursor
        """
        options: Dict[str, Any] = {
            "includeData": {
                "key": True,
                "attributes": spec.include_attributes,
                "payload": spec.include_payload,
            },
            "resultsPerPage": spec.page_size,
        }
        if spec.order_by:
            options["orderBy"] = [{
                "name": spec.order_by.attribute,
                "type": "numeric" if spec.order_by.numeric else "string",
                "desc": spec.order_by.descending,
            }]
        if cursor:
            options["cursor"] = cursor

        result = await self._rpc(self.QUERY_METHOD, [spec.to_query_string(), options])
        if not isinstance(result, dict):
            return QueryPage(entities=[])

        entities = [_parse_entity(item) for item in result.get("data") or [] if isinstance(item, dict)]
        return QueryPage(entities=entities, cursor=result.get("cursor") or None)

    async def get_entity(self, key: str) -> Optional[Entity]:
        """
        Fetch a single entity (payload included) by key

        Returns:
            Entity or None if the key is unknown
        """
        spec = QuerySpec(
            predicates=(eq("$key", key),),
            include_attributes=False,
            include_payload=True,
            page_size=1,
        )
        page = await self.execute(spec)
        return page.entities[0] if page.entities else None

    async def _rpc(self, method: str, params: list) -> Any:
        self._request_id += 1
        self.stats['requests'] += 1
        body = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        try:
            response = await self.client.post(self.rpc_url, json=body)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            self.stats['errors'] += 1
            logger.error("❌ Arkiv %s request failed: %s", method, e)
            raise ArkivQueryError(f"{method} failed: {e}") from e

        if not isinstance(data, dict):
            self.stats['errors'] += 1
            raise ArkivQueryError(f"{method} failed: malformed response")

        if data.get("error"):
            self.stats['errors'] += 1
            error = data["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            logger.error("❌ Arkiv %s returned an error: %s", method, message)
            raise ArkivQueryError(f"{method} failed: {message}")

        return data.get("result")

    async def aclose(self) -> None:
        await self.client.aclose()


def _parse_entity(item: Dict[str, Any]) -> Entity:
    """Convert an RPC entity object into an Entity"""
    attributes = []
    for group in ("attributes", "stringAttributes", "numericAttributes"):
        for attr in item.get(group) or []:
            if isinstance(attr, dict) and "key" in attr:
                attributes.append(Attribute(key=attr["key"], value=attr.get("value")))

    payload = None
    raw = item.get("value")
    if isinstance(raw, str) and raw:
        try:
            payload = bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)
        except ValueError:
            payload = raw.encode()

    return Entity(key=item.get("key", ""), attributes=attributes, payload=payload)
