from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from catalog_service.cache import CacheMiss, RedisCache, rating_key
from catalog_service.errors import CacheError


def test_rating_key_format():
    assert rating_key(7) == "product:7:average_rating"


def test_get_returns_stored_value():
    client = MagicMock()
    client.get.return_value = "4.5"

    assert RedisCache(client).get("k") == "4.5"


def test_get_decodes_bytes():
    client = MagicMock()
    client.get.return_value = b"3.0"

    assert RedisCache(client).get("k") == "3.0"


def test_get_missing_key_raises_cache_miss():
    client = MagicMock()
    client.get.return_value = None

    with pytest.raises(CacheMiss):
        RedisCache(client).get("k")


def test_connection_errors_become_cache_errors():
    client = MagicMock()
    client.get.side_effect = RedisConnectionError("down")
    client.set.side_effect = RedisConnectionError("down")
    client.delete.side_effect = RedisConnectionError("down")
    cache = RedisCache(client)

    for call in (lambda: cache.get("k"), lambda: cache.set("k", "1.0", 60), lambda: cache.delete("k")):
        with pytest.raises(CacheError) as exc_info:
            call()
        assert not isinstance(exc_info.value, CacheMiss)
        assert exc_info.value.details == "down"


def test_set_passes_ttl_as_expiry():
    client = MagicMock()

    RedisCache(client).set("k", "2.0", 600)

    client.set.assert_called_once_with("k", "2.0", ex=600)


def test_set_without_ttl_never_expires():
    client = MagicMock()
    cache = RedisCache(client)

    cache.set("k", "2.0", None)
    cache.set("k", "2.0", 0)

    assert [c.kwargs["ex"] for c in client.set.call_args_list] == [None, None]


def test_delete_removes_key():
    client = MagicMock()

    RedisCache(client).delete("k")

    client.delete.assert_called_once_with("k")
