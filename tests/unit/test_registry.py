"""Tests for the provider registry."""

import pytest

from dbprovider.exceptions import ConfigurationError
from dbprovider.providers.postgres import PostgresDatabaseProvider
from dbprovider.providers.registry import (
    create_provider,
    get_provider_factory,
    register_provider,
    registered_providers,
    unregister_provider,
)


@pytest.fixture
def scratch_key():
    yield "Scratch-Backend"
    unregister_provider("Scratch-Backend")
    unregister_provider("scratch-alias")


class TestRegistry:
    """Backend key -> provider factory."""

    def test_postgres_registered(self):
        assert get_provider_factory("PostgreSQL") is PostgresDatabaseProvider
        assert get_provider_factory("postgres") is PostgresDatabaseProvider

    def test_lookup_is_case_insensitive(self):
        assert get_provider_factory(" POSTGRES ") is PostgresDatabaseProvider

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unsupported database provider 'sqlite'"):
            get_provider_factory("sqlite")

    def test_create_provider_forwards_kwargs(self, database_env):
        provider = create_provider("postgres", env=database_env)
        assert isinstance(provider, PostgresDatabaseProvider)
        assert provider.config.host == "dbhost"

    def test_create_provider_fails_fast(self):
        with pytest.raises(ConfigurationError):
            create_provider("postgres", env={})

    def test_register_with_alias(self, scratch_key):
        @register_provider(scratch_key, "scratch-alias")
        def factory(**kwargs):
            return kwargs

        assert create_provider("scratch-alias", a=1) == {"a": 1}
        assert "scratch-backend" in registered_providers()

    def test_duplicate_key_rejected(self, scratch_key):
        register_provider(scratch_key)(lambda: None)
        with pytest.raises(ValueError):
            register_provider(scratch_key)(lambda: None)

    def test_re_registering_same_factory_allowed(self, scratch_key):
        def factory():
            return None

        register_provider(scratch_key)(factory)
        register_provider(scratch_key)(factory)
        assert get_provider_factory(scratch_key) is factory
