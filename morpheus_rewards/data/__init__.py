"""Data providers for Morpheus capital pool and MOR token reads."""

from morpheus_rewards.data.provider_factory import create_provider

__all__ = ["create_provider"]
