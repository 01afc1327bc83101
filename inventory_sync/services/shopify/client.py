# inventory_sync.services.shopify.client

import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from inventory_sync.core.config import get_settings
from inventory_sync.core.exceptions import (
    ConfigurationError,
    PlatformRejected,
    PreconditionFailed,
    TransportError,
)

logger = logging.getLogger(__name__)

STALE_COMPARE_CODE = "COMPARE_QUANTITY_STALE"
DETAILS_BATCH_SIZE = 50
LEVELS_PAGE_SIZE = 250
MESSAGE_LIMIT = 500


def _clip(payload: Any) -> str:
    return json.dumps(payload, default=str)[:MESSAGE_LIMIT]


class ShopifyGraphQLError(PlatformRejected):
    """Top-level GraphQL ``errors`` in a Shopify response."""
    def __init__(self, errors):
        self.errors = errors
        super().__init__(f"Shopify GraphQL errors: {_clip(errors)}")


GET_INVENTORY_LEVEL_QUERY = """
query GetInventoryLevel($inventoryItemId: ID!, $locationId: ID!) {
  inventoryLevel(inventoryItemId: $inventoryItemId, locationId: $locationId) {
    id
    quantities(names: ["available"]) {
      name
      quantity
    }
  }
}
"""

GET_LOCATION_LEVELS_QUERY = """
query GetLocationLevels($locationId: ID!, $first: Int!, $after: String) {
  location(id: $locationId) {
    id
    inventoryLevels(first: $first, after: $after) {
      pageInfo { hasNextPage endCursor }
      edges {
        node {
          id
          item { id }
          quantities(names: ["available"]) { name quantity }
        }
      }
    }
  }
}
"""

INVENTORY_SET_QUANTITIES_MUTATION = """
mutation InventorySet($input: InventorySetQuantitiesInput!) {
  inventorySetQuantities(input: $input) {
    inventoryAdjustmentGroup {
      createdAt
      reason
      changes { name delta quantityAfterChange }
    }
    userErrors { code field message }
  }
}
"""

GET_INVENTORY_ITEM_DETAILS_QUERY = """
query InventoryItemDetails($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on InventoryItem {
      id
      variant {
        sku
        title
        product {
          title
          productType
        }
      }
    }
  }
}
"""


def _available_from_quantities(quantities) -> Optional[int]:
    for entry in quantities or []:
        if entry.get("name") == "available":
            qty = entry.get("quantity")
            if isinstance(qty, int) and not isinstance(qty, bool):
                return qty
    return None


class ShopifyGraphQLClient:
    """
    Admin GraphQL client for the inventory endpoints the sync jobs use.

    Reads:
    - read_quantity()                    one item at one location
    - read_quantity_map_for_location()   every item at a location (paginated)
    - fetch_inventory_item_details()     product/variant metadata per item

    Writes:
    - conditional_set_quantity()         inventorySetQuantities with compareQuantity (CAS)

    Requests are paced with Shopify's cost-based throttle status returned in
    ``extensions.cost`` so long paginated reads don't get 429s.
    """

    def __init__(self, store_domain: Optional[str] = None, admin_token: Optional[str] = None,
                 api_version: Optional[str] = None, timeout: Optional[float] = None,
                 reference_uri: Optional[str] = None, safety_buffer_percentage: float = 0.25):
        settings = get_settings()
        self.store_domain = store_domain or settings.SHOPIFY_STORE_DOMAIN
        self.admin_token = admin_token or settings.SHOPIFY_ADMIN_TOKEN
        self.api_version = api_version or settings.SHOPIFY_API_VERSION
        self.timeout = timeout or settings.SHOPIFY_REQUEST_TIMEOUT
        self.reference_uri = reference_uri or settings.REVERSE_SYNC_REFERENCE_URI

        if not self.store_domain or not self.admin_token:
            raise ConfigurationError(
                "SHOPIFY_STORE_DOMAIN and SHOPIFY_ADMIN_TOKEN must be set in .env or as environment variables."
            )

        self.graphql_url = f"https://{self.store_domain}/admin/api/{self.api_version}/graphql.json"
        self.headers = {
            "X-Shopify-Access-Token": self.admin_token,
            "Content-Type": "application/json",
        }

        # Initial throttle status - updated after the first call
        self.max_available_points = 1000.0
        self.currently_available_points = self.max_available_points
        self.restore_rate = 50.0
        self.safety_buffer_percentage = safety_buffer_percentage
        self.safety_buffer_points = self.max_available_points * safety_buffer_percentage

        logger.debug("ShopifyGraphQLClient initialized for %s (API version %s)", self.store_domain, self.api_version)

    # --- Meta/Infrastructure ---

    def _update_throttle_status(self, extensions):
        if extensions and "cost" in extensions:
            throttle = extensions["cost"].get("throttleStatus") or {}
            if not throttle:
                return
            self.max_available_points = float(throttle.get("maximumAvailable", self.max_available_points))
            self.currently_available_points = float(throttle.get("currentlyAvailable", self.currently_available_points))
            self.restore_rate = float(throttle.get("restoreRate", self.restore_rate))
            self.safety_buffer_points = self.max_available_points * self.safety_buffer_percentage

    def _wait_for_budget(self, estimated_cost: int):
        required_points = estimated_cost + self.safety_buffer_points
        if self.currently_available_points >= required_points:
            return
        points_needed = required_points - self.currently_available_points
        wait_time = (points_needed / self.restore_rate) if self.restore_rate > 0 else 10
        wait_time = max(wait_time, 0) + 0.5
        logger.info(
            "Rate limit approaching: %.0f points available, need ~%.0f. Waiting %.2fs",
            self.currently_available_points, required_points, wait_time,
        )
        time.sleep(wait_time)
        self.currently_available_points = min(
            self.max_available_points,
            self.currently_available_points + self.restore_rate * wait_time,
        )

    def _make_request(self, query: str, variables: dict = None, estimated_cost: int = 10) -> Dict[str, Any]:
        """
        Makes a GraphQL request to Shopify and returns ``data``.

        Raises TransportError for network/HTTP failures, PlatformRejected when a
        successful response has an unreadable body, and ShopifyGraphQLError for
        top-level GraphQL errors.
        """
        self._wait_for_budget(estimated_cost)

        payload = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            response = requests.post(self.graphql_url, headers=self.headers, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as req_err:
            raise TransportError(f"Shopify request failed: {req_err}") from req_err

        try:
            response_data = response.json()
        except ValueError:
            if response.status_code < 400:
                raise PlatformRejected(
                    f"Unreadable Shopify response (HTTP {response.status_code}): {response.text[:MESSAGE_LIMIT]}"
                ) from None
            response_data = {}

        if response.status_code >= 400:
            if response.status_code == 429:
                # Force a wait before the next call
                self.currently_available_points = 0
            raise TransportError(f"Shopify HTTP {response.status_code}: {_clip(response_data or response.text)}")

        if "extensions" in response_data:
            self._update_throttle_status(response_data["extensions"])

        if response_data.get("errors"):
            raise ShopifyGraphQLError(response_data["errors"])

        return response_data.get("data") or {}

    # --- Reads ---

    def read_quantity(self, inventory_item_id: str, location_id: str) -> int:
        """Current ``available`` quantity of one item at one location."""
        data = self._make_request(
            GET_INVENTORY_LEVEL_QUERY,
            {"inventoryItemId": inventory_item_id, "locationId": location_id},
        )
        level = data.get("inventoryLevel") or {}
        quantity = _available_from_quantities(level.get("quantities"))
        if quantity is None:
            raise PlatformRejected(
                f"Could not read current Shopify available quantity for {inventory_item_id} (inventoryLevel/quantities)."
            )
        return quantity

    def read_quantity_map_for_location(self, location_id: str, max_pages: int = 10) -> Dict[str, int]:
        """
        inventoryItemId -> available quantity for every level stocked at ``location_id``.

        Queried from the location side because inventoryItem.inventoryLevels
        does not accept a location filter. Stops after ``max_pages`` pages.
        """
        quantities: Dict[str, int] = {}
        after = None

        for page in range(max_pages):
            data = self._make_request(
                GET_LOCATION_LEVELS_QUERY,
                {"locationId": location_id, "first": LEVELS_PAGE_SIZE, "after": after},
                estimated_cost=60,
            )
            connection = (data.get("location") or {}).get("inventoryLevels") or {}

            for edge in connection.get("edges") or []:
                node = edge.get("node") or {}
                item_id = (node.get("item") or {}).get("id")
                qty = _available_from_quantities(node.get("quantities"))
                if item_id and qty is not None:
                    quantities[item_id] = qty

            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")
        else:
            logger.warning("Stopped reading inventory levels for %s after %d pages", location_id, max_pages)

        return quantities

    def fetch_inventory_item_details(self, inventory_item_ids: List[str]) -> Dict[str, Dict[str, str]]:
        """inventoryItemId -> {product_type, product_title, variant_title, sku}"""
        details: Dict[str, Dict[str, str]] = {}

        for start in range(0, len(inventory_item_ids), DETAILS_BATCH_SIZE):
            batch = inventory_item_ids[start:start + DETAILS_BATCH_SIZE]
            data = self._make_request(GET_INVENTORY_ITEM_DETAILS_QUERY, {"ids": batch}, estimated_cost=len(batch) + 2)

            for node in data.get("nodes") or []:
                if not node or not node.get("id"):
                    continue
                variant = node.get("variant") or {}
                product = variant.get("product") or {}
                details[node["id"]] = {
                    "product_type": product.get("productType") or "",
                    "product_title": product.get("title") or "",
                    "variant_title": variant.get("title") or "",
                    "sku": variant.get("sku") or "",
                }

        return details

    # --- Writes ---

    def conditional_set_quantity(self, inventory_item_id: str, location_id: str,
                                 desired: int, expected_current: int) -> Dict[str, Any]:
        """
        Set ``available`` to ``desired`` only if Shopify still holds ``expected_current``.

        Raises PreconditionFailed when Shopify reports the compareQuantity as
        stale, PlatformRejected for any other userErrors.
        """
        variables = {
            "input": {
                "name": "available",
                "reason": "correction",
                "referenceDocumentUri": self.reference_uri,
                "quantities": [
                    {
                        "inventoryItemId": inventory_item_id,
                        "locationId": location_id,
                        "quantity": desired,
                        "compareQuantity": expected_current,
                    }
                ],
            }
        }
        data = self._make_request(INVENTORY_SET_QUANTITIES_MUTATION, variables)
        payload = data.get("inventorySetQuantities")
        if not payload:
            raise PlatformRejected(f"Shopify returned no inventorySetQuantities result: {_clip(data)}")
        user_errors = payload.get("userErrors") or []

        if user_errors:
            message = f"Shopify userErrors: {_clip(user_errors)}"
            if any(e.get("code") == STALE_COMPARE_CODE for e in user_errors):
                raise PreconditionFailed(message, user_errors)
            raise PlatformRejected(message, user_errors)

        return payload
