from decimal import Decimal
from types import MappingProxyType
from typing import Any, FrozenSet, List, Mapping

from pydantic import BaseModel, ConfigDict

from .exceptions import UnknownChannelTypeError, ValidationError
from .models import FEE_FIELDS, ChannelFees, ChannelType, SalesChannel


class ChannelProfile(BaseModel):
    """Perfil de taxas de um tipo de canal: campos aplicáveis e valores padrão"""
    model_config = ConfigDict(frozen=True)

    type: ChannelType
    name: str
    description: str
    applicable_fields: FrozenSet[str]
    default_fees: ChannelFees


_MARKETPLACE_FIELDS = frozenset({
    "commission_percent", "fixed_fee", "shipping_cost", "advertising_percent", "other_fees",
})
_FULFILLMENT_FIELDS = _MARKETPLACE_FIELDS | {"fulfillment_fee"}


def _profile(channel_type: ChannelType, name: str, description: str,
             fields: FrozenSet[str], commission: str) -> ChannelProfile:
    return ChannelProfile(
        type=channel_type,
        name=name,
        description=description,
        applicable_fields=frozenset(fields),
        default_fees=ChannelFees(commission_percent=Decimal(commission)),
    )


# Tabela canônica: tipo de canal -> perfil. Construída uma vez, somente leitura.
_PROFILES: Mapping[ChannelType, ChannelProfile] = MappingProxyType({
    ChannelType.SITE_PROPRIO: _profile(
        ChannelType.SITE_PROPRIO, "Site Próprio", "Vendas através do site próprio",
        frozenset({"commission_percent", "advertising_percent", "other_fees"}), "0",
    ),
    ChannelType.AMAZON_FBM: _profile(
        ChannelType.AMAZON_FBM, "Amazon FBM", "Fulfilled by Merchant (frete por conta do vendedor)",
        _MARKETPLACE_FIELDS, "15",
    ),
    ChannelType.AMAZON_FBA_ONSITE: _profile(
        ChannelType.AMAZON_FBA_ONSITE, "Amazon FBA On Site", "FBA com estoque próprio",
        _FULFILLMENT_FIELDS, "15",
    ),
    ChannelType.AMAZON_DBA: _profile(
        ChannelType.AMAZON_DBA, "Amazon DBA", "Delivery by Amazon",
        _FULFILLMENT_FIELDS, "15",
    ),
    ChannelType.AMAZON_FBA: _profile(
        ChannelType.AMAZON_FBA, "Amazon FBA", "Fulfilled by Amazon",
        _FULFILLMENT_FIELDS, "15",
    ),
    ChannelType.MERCADO_LIVRE_ME1: _profile(
        ChannelType.MERCADO_LIVRE_ME1, "Mercado Livre ME1", "Mercado Envios 1 (frete por conta do vendedor)",
        _MARKETPLACE_FIELDS, "18",
    ),
    ChannelType.MERCADO_LIVRE_FLEX: _profile(
        ChannelType.MERCADO_LIVRE_FLEX, "Mercado Livre Flex", "Entrega Flex pelo vendedor",
        _MARKETPLACE_FIELDS, "18",
    ),
    ChannelType.MERCADO_LIVRE_ENVIOS: _profile(
        ChannelType.MERCADO_LIVRE_ENVIOS, "Mercado Livre Envios", "Mercado Envios",
        _MARKETPLACE_FIELDS, "18",
    ),
    ChannelType.MERCADO_LIVRE_FULL: _profile(
        ChannelType.MERCADO_LIVRE_FULL, "Mercado Livre Full", "Estoque no centro de distribuição do ML",
        _FULFILLMENT_FIELDS, "18",
    ),
    ChannelType.SHOPEE: _profile(
        ChannelType.SHOPEE, "Shopee", "Marketplace Shopee",
        _MARKETPLACE_FIELDS, "12",
    ),
    ChannelType.MARKETPLACE: _profile(
        ChannelType.MARKETPLACE, "Marketplace", "Marketplace genérico",
        frozenset(FEE_FIELDS), "15",
    ),
})


def parse_channel_type(value: Any) -> ChannelType:
    """
    Converte um valor para ChannelType (case-insensitive).

    Raises:
        UnknownChannelTypeError: Se o canal não for suportado
    """
    if isinstance(value, ChannelType):
        return value

    if isinstance(value, str):
        normalized = value.strip().upper()
        if normalized in ChannelType.__members__:
            return ChannelType[normalized]

    supported = ", ".join(get_supported_channels())
    raise UnknownChannelTypeError(
        f"Canal '{value}' não suportado. Canais disponíveis: {supported}",
        field="type",
        value=value,
    )


def profile_for(channel_type: ChannelType) -> ChannelProfile:
    """Retorna o perfil de taxas do canal"""
    if not isinstance(channel_type, ChannelType):
        channel_type = parse_channel_type(channel_type)
    return _PROFILES[channel_type]


def defaults_for(channel_type: ChannelType) -> ChannelFees:
    """Taxas padrão do canal"""
    return profile_for(channel_type).default_fees


def applicable_fields(channel_type: ChannelType) -> FrozenSet[str]:
    """Campos de taxa que fazem sentido para o canal"""
    return profile_for(channel_type).applicable_fields


def get_supported_channels() -> List[str]:
    """Retorna lista de canais suportados, na ordem canônica"""
    return [channel_type.value for channel_type in ChannelType]


def is_supported(value: Any) -> bool:
    """Verifica se um canal é suportado"""
    try:
        parse_channel_type(value)
    except UnknownChannelTypeError:
        return False
    return True


def create_default_channel(channel_type: ChannelType) -> SalesChannel:
    """
    Cria a configuração inicial de um canal: desabilitado, preço zero e
    taxas padrão do perfil.

    Raises:
        UnknownChannelTypeError: tipo fora do conjunto suportado
    """
    profile = profile_for(channel_type)
    return SalesChannel(
        type=profile.type,
        name=profile.name,
        enabled=False,
        fees=profile.default_fees,
    )


create_empty_channel = create_default_channel


def validate_fees_for(channel_type: ChannelType, fees: ChannelFees) -> None:
    """
    Garante que campos não aplicáveis ao canal estejam zerados.

    Raises:
        ValidationError: campo não aplicável com valor diferente de zero
    """
    profile = profile_for(channel_type)
    for field in FEE_FIELDS:
        if field not in profile.applicable_fields and getattr(fees, field) != 0:
            raise ValidationError(
                f"Campo '{field}' não se aplica ao canal {profile.name}",
                field=field,
                value=getattr(fees, field),
            )
