"""
Persistência do conjunto de canais de um produto.

Toda gravação substitui o conjunto inteiro (último a gravar vence).
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base

from .aggregator import check_unique_types
from .exceptions import ConfigurationError, PersistenceError
from .models import SalesChannel

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ProductChannelSet(Base):
    __tablename__ = "product_channels"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String, unique=True, index=True, nullable=False)
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)


def dump_channels(channels: List[SalesChannel]) -> List[Dict[str, Any]]:
    """Serializa canais para JSON (decimais como string)"""
    return [channel.model_dump(mode="json") for channel in channels]


def parse_channels(payload: Any) -> List[SalesChannel]:
    """
    Aceita uma lista de canais ou {"channels": [...]}.

    Raises:
        PersistenceError: conteúdo armazenado inválido
    """
    if isinstance(payload, dict):
        payload = payload.get("channels", [])
    if not isinstance(payload, list):
        raise PersistenceError("Formato de canais inválido", details={"payload_type": type(payload).__name__})

    try:
        return [SalesChannel.model_validate(item) for item in payload]
    except PydanticValidationError as e:
        raise PersistenceError(f"Canais armazenados inválidos: {e.error_count()} erro(s)") from e


class ChannelStore(ABC):
    """Interface de persistência dos canais de um produto"""

    @abstractmethod
    def load_channels(self, product_id: Any) -> List[SalesChannel]:
        """Canais salvos do produto (lista vazia se nunca foi salvo)"""
        pass

    @abstractmethod
    def save_channels(self, product_id: Any, channels: List[SalesChannel]) -> List[SalesChannel]:
        """Substitui o conjunto de canais e retorna a versão armazenada"""
        pass


class InMemoryChannelStore(ChannelStore):
    """Store em memória, usada em testes e sessões sem backend"""

    def __init__(self):
        self._data: Dict[str, List[SalesChannel]] = {}
        self._next_id = 1

    def load_channels(self, product_id: Any) -> List[SalesChannel]:
        return list(self._data.get(str(product_id), []))

    def save_channels(self, product_id: Any, channels: List[SalesChannel]) -> List[SalesChannel]:
        channels = list(channels)
        check_unique_types(channels)

        stored = []
        for channel in channels:
            if channel.id is None:
                channel = channel.model_copy(update={"id": self._next_id})
                self._next_id += 1
            stored.append(channel)

        self._data[str(product_id)] = stored
        return list(stored)


class SqlChannelStore(ChannelStore):
    """Store em banco via SQLAlchemy (tabela product_channels, JSONB no PostgreSQL)"""

    def __init__(self, db: Session):
        self.db = db

    def _get_row(self, product_id: Any) -> Optional[ProductChannelSet]:
        return self.db.query(ProductChannelSet).filter(ProductChannelSet.product_id == str(product_id)).first()

    def load_channels(self, product_id: Any) -> List[SalesChannel]:
        try:
            row = self._get_row(product_id)
        except SQLAlchemyError as e:
            logger.error(f"Erro ao carregar canais do produto {product_id}: {e}")
            raise PersistenceError(f"Erro ao carregar canais: {e}") from e

        if row is None:
            return []
        return parse_channels(row.data or {})

    def save_channels(self, product_id: Any, channels: List[SalesChannel]) -> List[SalesChannel]:
        channels = list(channels)
        check_unique_types(channels)
        payload = {"channels": dump_channels(channels)}

        try:
            row = self._get_row(product_id)
            if row is None:
                row = ProductChannelSet(product_id=str(product_id), data=payload)
                self.db.add(row)
            else:
                row.data = payload

            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Erro ao salvar canais do produto {product_id}: {e}")
            raise PersistenceError(f"Erro ao salvar canais: {e}") from e

        logger.info(f"Produto {product_id}: {len(channels)} canais gravados")
        return parse_channels(row.data)


class HttpChannelStore(ChannelStore):
    """
    Store remota: GET/PUT {base_url}/products/{id}/channels.

    Erros HTTP, timeouts e falhas de transporte viram PersistenceError.
    """

    def __init__(self, base_url: Optional[str], timeout: float = 10.0,
                 client: Optional[httpx.Client] = None, headers: Optional[Dict[str, str]] = None):
        if not base_url:
            raise ConfigurationError("URL da API de canais não configurada (CHANNELS_API_URL)")

        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout, headers=headers)
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "HttpChannelStore":
        """Cria a store a partir de Settings (channels_api_url, http_timeout)"""
        return cls(settings.channels_api_url, timeout=settings.http_timeout, **kwargs)

    def _url(self, product_id: Any) -> str:
        return f"{self.base_url}/products/{product_id}/channels"

    def _request(self, method: str, product_id: Any, **kwargs) -> httpx.Response:
        url = self._url(product_id)
        logger.info(f"Channels API Request: {method} {url}")

        try:
            response = self.client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout na API de canais: {url}")
            raise PersistenceError(f"Timeout ao acessar {url}") from e
        except httpx.HTTPError as e:
            logger.error(f"Erro de conexão com a API de canais: {e}")
            raise PersistenceError(f"Erro de conexão: {e}") from e

        return response

    def load_channels(self, product_id: Any) -> List[SalesChannel]:
        response = self._request("GET", product_id)

        if response.status_code == 404:
            return []
        if not response.is_success:
            raise PersistenceError(
                f"API de canais retornou HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise PersistenceError("Resposta da API de canais não é JSON") from e

        return parse_channels(payload)

    def save_channels(self, product_id: Any, channels: List[SalesChannel]) -> List[SalesChannel]:
        channels = list(channels)
        check_unique_types(channels)

        response = self._request("PUT", product_id, json={"channels": dump_channels(channels)})

        if not response.is_success:
            raise PersistenceError(
                f"API de canais retornou HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        if not response.content:
            return channels

        try:
            payload = response.json()
        except ValueError as e:
            raise PersistenceError("Resposta da API de canais não é JSON") from e

        return parse_channels(payload)

    def close(self):
        self.client.close()
