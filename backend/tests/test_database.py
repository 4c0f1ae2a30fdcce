"""
Product API: Database & Lifespan Tests
=========================================

What:  Tests for MongoDatabase (connect / close) and for the application
       lifespan that wires it to ProductService.
How:   AsyncMongoClient is patched, so no MongoDB server is needed.

What we test:
    ✅ connect() pings the server and resolves shop.products
    ✅ connect() closes the client and re-raises when the ping fails
    ✅ Startup fails without MONGO_URI or with an unreachable server
    ✅ Startup installs ProductService; shutdown closes the client,
       also when the app exits through an exception
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from pymongo.errors import ServerSelectionTimeoutError

from product_api.config import Settings
from product_api.database import MongoDatabase
from product_api.main import create_app
from product_api.services.product_service import ProductService


def _mock_client(collection=None, ping_error=None):
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=ping_error)
    client.close = AsyncMock()
    client.__getitem__.return_value.__getitem__.return_value = collection or MagicMock()
    return client


class TestMongoDatabase:

    @pytest.mark.asyncio
    async def test_connect_pings_and_resolves_collection(self):
        collection = MagicMock()
        client = _mock_client(collection)
        database = MongoDatabase("mongodb://db:27017", "shop", "products", timeout_ms=1500)

        with patch("product_api.database.AsyncMongoClient", return_value=client) as factory:
            result = await database.connect()

        factory.assert_called_once_with(
            "mongodb://db:27017", tz_aware=True, serverSelectionTimeoutMS=1500
        )
        client.admin.command.assert_awaited_once_with("ping")
        client.__getitem__.assert_called_once_with("shop")
        client.__getitem__.return_value.__getitem__.assert_called_once_with("products")
        assert result is collection
        assert database.products is collection
        assert database.is_connected

    @pytest.mark.asyncio
    async def test_connect_failure_closes_client(self):
        client = _mock_client(ping_error=ServerSelectionTimeoutError("unreachable"))
        database = MongoDatabase("mongodb://nowhere:27017")

        with patch("product_api.database.AsyncMongoClient", return_value=client):
            with pytest.raises(ServerSelectionTimeoutError):
                await database.connect()

        client.close.assert_awaited_once()
        assert not database.is_connected

    def test_products_before_connect(self):
        with pytest.raises(RuntimeError):
            MongoDatabase("mongodb://db:27017").products

    @pytest.mark.asyncio
    async def test_close(self):
        client = _mock_client()
        database = MongoDatabase("mongodb://db:27017")

        with patch("product_api.database.AsyncMongoClient", return_value=client):
            await database.connect()
        await database.close()
        await database.close()

        client.close.assert_awaited_once()


class TestLifespan:

    @pytest.mark.asyncio
    async def test_missing_mongo_uri_is_fatal(self):
        app = create_app(Settings(mongo_uri=""))

        with pytest.raises(ValueError, match="MONGO_URI is missing"):
            async with app.router.lifespan_context(app):
                pass

        assert not hasattr(app.state, "product_service")

    @pytest.mark.asyncio
    async def test_unreachable_database_is_fatal(self):
        app = create_app(Settings(mongo_uri="mongodb://nowhere:27017"))
        client = _mock_client(ping_error=ServerSelectionTimeoutError("unreachable"))

        with patch("product_api.database.AsyncMongoClient", return_value=client):
            with pytest.raises(ServerSelectionTimeoutError):
                async with app.router.lifespan_context(app):
                    pass

    @pytest.mark.asyncio
    async def test_startup_installs_service_and_shutdown_closes(self):
        collection = MagicMock()
        client = _mock_client(collection)
        app = create_app(Settings(mongo_uri="mongodb://db:27017", mongo_database="catalog"))

        with patch("product_api.database.AsyncMongoClient", return_value=client):
            async with app.router.lifespan_context(app):
                service = app.state.product_service
                assert isinstance(service, ProductService)
                assert service.collection is collection
                client.__getitem__.assert_called_once_with("catalog")
                client.close.assert_not_called()

        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_closes_client_when_serving_fails(self):
        client = _mock_client()
        app = create_app(Settings(mongo_uri="mongodb://db:27017"))

        with patch("product_api.database.AsyncMongoClient", return_value=client):
            with pytest.raises(RuntimeError, match="server crashed"):
                async with app.router.lifespan_context(app):
                    raise RuntimeError("server crashed")

        client.close.assert_awaited_once()
