import json
from decimal import Decimal

import httpx
import pytest

from channel_pricing import (
    ChannelType,
    ConfigurationError,
    HttpChannelStore,
    InMemoryChannelStore,
    PersistenceError,
    SqlChannelStore,
    ValidationError,
    create_default_channel,
)
from channel_pricing.store import ProductChannelSet
from config import Settings

BASE_URL = "https://api.exemplo.com.br"


def _channels():
    fba = create_default_channel(ChannelType.AMAZON_FBA)
    fba = fba.model_copy(update={
        "enabled": True,
        "selling_price": Decimal("149.90"),
        "fees": fba.fees.model_copy(update={"fulfillment_fee": Decimal("12.50")}),
    })
    return [create_default_channel(ChannelType.SITE_PROPRIO), fba]


def test_in_memory_store_round_trip():
    """Testa gravação e leitura na store em memória"""
    store = InMemoryChannelStore()

    assert store.load_channels(1) == []

    saved = store.save_channels(1, _channels())

    assert [c.type for c in saved] == [ChannelType.SITE_PROPRIO, ChannelType.AMAZON_FBA]
    assert all(c.id is not None for c in saved)
    assert store.load_channels("1") == saved


def test_in_memory_store_replaces_whole_set():
    store = InMemoryChannelStore()
    store.save_channels("sku", _channels())

    store.save_channels("sku", [create_default_channel(ChannelType.SHOPEE)])

    assert [c.type for c in store.load_channels("sku")] == [ChannelType.SHOPEE]


def test_store_rejects_duplicate_types():
    store = InMemoryChannelStore()
    shopee = create_default_channel(ChannelType.SHOPEE)

    with pytest.raises(ValidationError):
        store.save_channels("sku", [shopee, shopee])


def test_sql_store_round_trip(db_session):
    """Testa gravação e leitura na tabela product_channels"""
    store = SqlChannelStore(db_session)

    assert store.load_channels("sku-1") == []

    saved = store.save_channels("sku-1", _channels())
    loaded = store.load_channels("sku-1")

    assert loaded == saved
    fba = next(c for c in loaded if c.type == ChannelType.AMAZON_FBA)
    assert fba.selling_price == Decimal("149.90")
    assert fba.fees.fulfillment_fee == Decimal("12.50")
    assert fba.enabled is True


def test_sql_store_updates_existing_row(db_session):
    store = SqlChannelStore(db_session)
    store.save_channels("sku-1", _channels())
    store.save_channels("sku-1", [create_default_channel(ChannelType.SHOPEE)])

    rows = db_session.query(ProductChannelSet).filter(ProductChannelSet.product_id == "sku-1").all()

    assert len(rows) == 1
    assert [c.type for c in store.load_channels("sku-1")] == [ChannelType.SHOPEE]


def _http_store(handler) -> HttpChannelStore:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpChannelStore(BASE_URL, client=client)


def test_http_store_load():
    """Testa leitura via API remota"""
    payload = {"channels": [c.model_dump(mode="json") for c in _channels()]}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert str(request.url) == f"{BASE_URL}/products/sku-1/channels"
        return httpx.Response(200, json=payload)

    channels = _http_store(handler).load_channels("sku-1")

    assert [c.type for c in channels] == [ChannelType.SITE_PROPRIO, ChannelType.AMAZON_FBA]
    assert channels[1].selling_price == Decimal("149.90")


def test_http_store_load_not_found_is_empty():
    store = _http_store(lambda request: httpx.Response(404))

    assert store.load_channels("sku-1") == []


def test_http_store_save_sends_full_set():
    """Testa se o PUT envia o conjunto completo e usa a resposta do servidor"""
    received = {}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PUT"
        body = json.loads(request.content)
        received.update(body)
        stored = [dict(channel, id=i + 1) for i, channel in enumerate(body["channels"])]
        return httpx.Response(200, json={"channels": stored})

    saved = _http_store(handler).save_channels("sku-1", _channels())

    assert [c["type"] for c in received["channels"]] == ["SITE_PROPRIO", "AMAZON_FBA"]
    assert received["channels"][1]["selling_price"] == "149.90"
    assert [c.id for c in saved] == [1, 2]


def test_http_store_server_error_raises():
    """Testa se resposta de erro vira PersistenceError"""
    store = _http_store(lambda request: httpx.Response(500, json={"message": "erro"}))

    with pytest.raises(PersistenceError) as exc_info:
        store.save_channels("sku-1", _channels())

    assert exc_info.value.details["status_code"] == 500


def test_http_store_timeout_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timeout", request=request)

    with pytest.raises(PersistenceError):
        _http_store(handler).load_channels("sku-1")


def test_http_store_invalid_payload_raises():
    store = _http_store(lambda request: httpx.Response(200, json={"channels": [{"type": "CANAL_X"}]}))

    with pytest.raises(PersistenceError):
        store.load_channels("sku-1")


def test_http_store_requires_base_url():
    """Testa se a store remota exige URL configurada"""
    with pytest.raises(ConfigurationError):
        HttpChannelStore(None)

    with pytest.raises(ConfigurationError):
        HttpChannelStore("")


def test_http_store_from_settings():
    """Testa criação da store remota a partir das configurações"""
    with pytest.raises(ConfigurationError):
        HttpChannelStore.from_settings(Settings(channels_api_url=None))

    store = HttpChannelStore.from_settings(Settings(channels_api_url=f"{BASE_URL}/", http_timeout=3.0))

    assert store.base_url == BASE_URL
    assert store.timeout == 3.0
    store.close()
