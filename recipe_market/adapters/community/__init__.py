from recipe_market.adapters.community.base import AbstractCommunityClient
from recipe_market.adapters.community.http_client import HttpCommunityClient

__all__ = ["AbstractCommunityClient", "HttpCommunityClient"]
