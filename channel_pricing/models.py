from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_serializer, model_validator

from .costs import calculate_total_cost
from .parsing import parse_decimal, quantize_cents


class ChannelType(str, Enum):
    """
    Canais de venda suportados.

    A ordem de declaração é a ordem canônica usada como último critério
    de desempate entre canais.
    """
    SITE_PROPRIO = "SITE_PROPRIO"
    AMAZON_FBM = "AMAZON_FBM"
    AMAZON_FBA_ONSITE = "AMAZON_FBA_ONSITE"
    AMAZON_DBA = "AMAZON_DBA"
    AMAZON_FBA = "AMAZON_FBA"
    MERCADO_LIVRE_ME1 = "MERCADO_LIVRE_ME1"
    MERCADO_LIVRE_FLEX = "MERCADO_LIVRE_FLEX"
    MERCADO_LIVRE_ENVIOS = "MERCADO_LIVRE_ENVIOS"
    MERCADO_LIVRE_FULL = "MERCADO_LIVRE_FULL"
    SHOPEE = "SHOPEE"
    MARKETPLACE = "MARKETPLACE"


CHANNEL_ORDER: Dict[ChannelType, int] = {channel_type: i for i, channel_type in enumerate(ChannelType)}


class ProfitabilityStatus(str, Enum):
    """Classificação da margem líquida"""
    EXCELENTE = "EXCELENTE"  # margem >= 30%
    BOA = "BOA"              # margem >= 15%
    BAIXA = "BAIXA"          # margem >= 0%
    PREJUIZO = "PREJUIZO"    # margem negativa


def _to_decimal(value: Any) -> Any:
    if value is None:
        return value
    return parse_decimal(value)


# Decimal não negativo que também aceita strings no formato brasileiro ("R$ 12,50")
Amount = Annotated[Decimal, BeforeValidator(_to_decimal), Field(ge=0)]


class ProductCost(BaseModel):
    """Snapshot imutável de custos do produto usado como entrada do cálculo"""
    model_config = ConfigDict(frozen=True)

    item_cost: Amount = Decimal("0")
    packaging_cost: Amount = Decimal("0")
    tax_percent: Amount = Decimal("0")

    @property
    def total_cost(self) -> Decimal:
        """Custo de chegada (item + embalagem). Imposto é aplicado por canal."""
        return calculate_total_cost(self.item_cost, self.packaging_cost)


class ChannelFees(BaseModel):
    """
    Estrutura de taxas de um canal.

    Todos os campos existem para todos os canais; campos que não se
    aplicam ao tipo de canal ficam em zero.
    """
    model_config = ConfigDict(frozen=True)

    commission_percent: Amount = Decimal("0")
    fixed_fee: Amount = Decimal("0")
    shipping_cost: Amount = Decimal("0")
    fulfillment_fee: Amount = Decimal("0")
    advertising_percent: Amount = Decimal("0")
    other_fees: Amount = Decimal("0")


FEE_FIELDS = tuple(ChannelFees.model_fields.keys())


class SalesChannel(BaseModel):
    """Configuração de um canal de venda vinculada a um produto"""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    type: ChannelType
    name: str = ""
    enabled: bool = False
    selling_price: Amount = Decimal("0")
    fees: ChannelFees = Field(default_factory=ChannelFees)
    min_price: Optional[Amount] = None
    max_price: Optional[Amount] = None
    competitor_price: Optional[Amount] = None

    @model_validator(mode="after")
    def check_price_bounds(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price não pode ser maior que max_price")
        return self


def _cents(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(quantize_cents(value))


class PricingCalculation(BaseModel):
    """
    Resultado de lucratividade de um canal (derivado, nunca persistido).

    Os valores são Decimal exatos; o arredondamento a centavos acontece
    apenas na serialização JSON.
    """
    model_config = ConfigDict(frozen=True)

    channel_type: ChannelType
    channel_name: str
    selling_price: Decimal
    total_cost: Decimal
    tax_value: Decimal
    commission_value: Decimal
    advertising_cost: Decimal
    fulfillment_cost: Decimal
    shipping_cost: Decimal
    fixed_fees: Decimal
    other_fees: Decimal
    total_channel_costs: Decimal
    gross_profit: Decimal
    net_profit: Decimal
    profit_margin_percent: Decimal
    markup_percent: Decimal
    roi: Decimal
    is_profitable: bool
    is_competitive: bool
    is_within_price_range: bool
    break_even_price: Optional[Decimal] = None
    profitability_status: ProfitabilityStatus

    @field_serializer(
        "selling_price", "total_cost", "tax_value", "commission_value", "advertising_cost",
        "fulfillment_cost", "shipping_cost", "fixed_fees", "other_fees", "total_channel_costs",
        "gross_profit", "net_profit", "profit_margin_percent", "markup_percent", "roi",
        "break_even_price",
        when_used="json",
    )
    def serialize_cents(self, value: Optional[Decimal]) -> Optional[str]:
        return _cents(value)


class ChannelsSummary(BaseModel):
    """Comparativo de todos os canais habilitados de um produto"""
    model_config = ConfigDict(frozen=True)

    results: Dict[ChannelType, PricingCalculation] = Field(default_factory=dict)
    best_channel: Optional[ChannelType] = None
    worst_channel: Optional[ChannelType] = None
    ranking: List[ChannelType] = Field(default_factory=list)
    profitable_count: int = 0
    total_channel_count: int = 0
    average_margin_percent: Decimal = Decimal("0")
    total_revenue: Decimal = Decimal("0")

    @field_serializer("average_margin_percent", "total_revenue", when_used="json")
    def serialize_cents(self, value: Decimal) -> str:
        return _cents(value)


class PriceBreakdown(BaseModel):
    """Breakdown detalhado do cálculo de um canal"""
    steps: List[Dict[str, Any]]
    notes: Optional[List[str]] = None
