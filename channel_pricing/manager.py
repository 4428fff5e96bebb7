"""
Estado de edição dos canais de um produto.

Mantém o conjunto completo de canais (um por tipo), aplica edições
validadas, recalcula o resumo sob demanda e persiste tudo de uma vez
pela ChannelStore.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .aggregator import calculate_all_channels, check_unique_types
from .calculator import calculate_channel
from .costs import build_product_cost
from .exceptions import ConfigurationError, PersistenceError, ValidationError
from .fees import create_default_channel, parse_channel_type, validate_fees_for
from .models import FEE_FIELDS, ChannelsSummary, ChannelType, ProductCost, SalesChannel

logger = logging.getLogger(__name__)

# Campos de SalesChannel editáveis via update_channel
EDITABLE_FIELDS = frozenset({
    "name", "enabled", "selling_price", "min_price", "max_price", "competitor_price",
})

PRODUCT_COST_FIELDS = frozenset(ProductCost.model_fields.keys())


def complete_channels(channels: Optional[Iterable[SalesChannel]]) -> Dict[ChannelType, SalesChannel]:
    """
    Garante um canal por tipo, preenchendo os ausentes com o padrão.

    Raises:
        ValidationError: tipo duplicado
    """
    channels = list(channels or [])
    check_unique_types(channels)

    by_type = {channel.type: channel for channel in channels}
    return {
        channel_type: by_type.get(channel_type) or create_default_channel(channel_type)
        for channel_type in ChannelType
    }


class ChannelManager:
    """Sessão de edição dos canais de um produto"""

    def __init__(self, product_id: Any, product_cost: ProductCost,
                 channels: Optional[Iterable[SalesChannel]] = None, store=None):
        self.product_id = product_id
        self.store = store
        self._product_cost = product_cost
        self._channels = complete_channels(channels)
        self._take_snapshot()

    @classmethod
    def load(cls, product_id: Any, product_cost: ProductCost, store) -> "ChannelManager":
        """
        Carrega os canais salvos do produto.

        Raises:
            PersistenceError: falha ao carregar
        """
        channels = store.load_channels(product_id)
        logger.debug(f"Produto {product_id}: {len(channels)} canais carregados")
        return cls(product_id, product_cost, channels, store)

    def _take_snapshot(self):
        self._saved_channels = dict(self._channels)
        self._saved_product_cost = self._product_cost
        self._dirty = False

    def _refresh_dirty(self):
        # Edição que volta ao estado salvo não deixa pendências
        self._dirty = (
            self._channels != self._saved_channels
            or self._product_cost != self._saved_product_cost
        )

    @property
    def channels(self) -> List[SalesChannel]:
        """Canais na ordem canônica"""
        return list(self._channels.values())

    @property
    def product_cost(self) -> ProductCost:
        return self._product_cost

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def get_channel(self, channel_type: Any) -> SalesChannel:
        return self._channels[parse_channel_type(channel_type)]

    def _replace(self, channel: SalesChannel, changes: Dict[str, Any]) -> SalesChannel:
        """Monta e valida o canal editado sem alterar o estado"""
        data = channel.model_dump()
        data.update(changes)
        try:
            updated = SalesChannel.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        validate_fees_for(updated.type, updated.fees)
        calculate_channel(self._product_cost.total_cost, self._product_cost.tax_percent, updated)
        return updated

    def update_channel(self, channel_type: Any, **changes) -> SalesChannel:
        """
        Edita campos do canal (preço, nome, faixa de preço, concorrente, habilitado).

        Raises:
            ValidationError: campo desconhecido ou valor inválido; estado não muda
        """
        channel = self.get_channel(channel_type)

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Campo '{field}' não pode ser editado", field=field)

        updated = self._replace(channel, changes)
        self._channels[updated.type] = updated
        self._refresh_dirty()
        return updated

    def update_fees(self, channel_type: Any, **changes) -> SalesChannel:
        """
        Edita taxas do canal.

        Raises:
            ValidationError: campo de taxa desconhecido, valor inválido ou
                campo não aplicável ao tipo de canal
        """
        channel = self.get_channel(channel_type)

        unknown = set(changes) - set(FEE_FIELDS)
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Taxa '{field}' não existe", field=field)

        fees = channel.fees.model_dump()
        fees.update(changes)
        updated = self._replace(channel, {"fees": fees})
        self._channels[updated.type] = updated
        self._refresh_dirty()
        return updated

    def set_enabled(self, channel_type: Any, enabled: bool) -> SalesChannel:
        return self.update_channel(channel_type, enabled=enabled)

    def update_product_cost(self, **changes) -> ProductCost:
        """
        Edita custo do item, embalagem ou imposto.

        Raises:
            ValidationError: campo desconhecido ou valor inválido
        """
        unknown = set(changes) - PRODUCT_COST_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Campo '{field}' não existe no custo do produto", field=field)

        data = self._product_cost.model_dump()
        data.update(changes)
        product_cost = build_product_cost(**data)

        self._product_cost = product_cost
        self._refresh_dirty()
        return product_cost

    def recompute(self) -> ChannelsSummary:
        """Recalcula o resumo de todos os canais habilitados"""
        logger.debug(f"Recalculando canais do produto {self.product_id}")
        return calculate_all_channels(
            self._product_cost.total_cost,
            self._product_cost.tax_percent,
            self.channels,
        )

    def save(self) -> List[SalesChannel]:
        """
        Envia o conjunto completo de canais para a store.

        Em caso de falha as edições locais e o estado 'dirty' são mantidos.

        Raises:
            ConfigurationError: manager sem store
            PersistenceError: falha ao salvar
        """
        if self.store is None:
            raise ConfigurationError("Nenhuma store configurada para salvar canais")

        try:
            stored = self.store.save_channels(self.product_id, self.channels)
        except PersistenceError as e:
            logger.error(f"Erro ao salvar canais do produto {self.product_id}: {e}. Edições mantidas localmente")
            raise

        self._channels = complete_channels(stored)
        self._take_snapshot()
        logger.info(f"Canais do produto {self.product_id} salvos ({len(stored)} canais)")
        return self.channels

    def reset(self):
        """Descarta as edições e volta ao último estado carregado/salvo"""
        self._channels = dict(self._saved_channels)
        self._product_cost = self._saved_product_cost
        self._dirty = False
