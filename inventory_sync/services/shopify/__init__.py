from .client import ShopifyGraphQLClient, ShopifyGraphQLError

__all__ = ["ShopifyGraphQLClient", "ShopifyGraphQLError"]
