import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .calculator import calculate_channel
from .exceptions import ValidationError
from .models import CHANNEL_ORDER, ChannelsSummary, ChannelType, PricingCalculation, SalesChannel

logger = logging.getLogger(__name__)


def _best_key(result: PricingCalculation):
    # maior lucro exato, depois menor custo de canal, depois ordem canônica
    return (-result.net_profit, result.total_channel_costs, CHANNEL_ORDER[result.channel_type])


def _worst_key(result: PricingCalculation):
    # menor lucro, depois maior custo de canal, depois ordem canônica
    return (result.net_profit, -result.total_channel_costs, CHANNEL_ORDER[result.channel_type])


def check_unique_types(channels: Iterable[SalesChannel]) -> None:
    """
    Raises:
        ValidationError: dois canais com o mesmo tipo
    """
    seen = set()
    for channel in channels:
        if channel.type in seen:
            raise ValidationError(
                f"Canal {channel.type.value} informado mais de uma vez",
                field="type",
                value=channel.type.value,
            )
        seen.add(channel.type)


def calculate_all_channels(total_cost: Any, tax_percent: Any,
                           channels: Iterable[SalesChannel]) -> ChannelsSummary:
    """
    Calcula todos os canais habilitados e compara os resultados.

    Canais desabilitados ficam de fora. Nenhum canal habilitado não é erro:
    o resumo volta vazio, sem melhor/pior canal.

    Raises:
        ValidationError: tipo duplicado ou qualquer canal inválido
    """
    channels = list(channels)
    check_unique_types(channels)

    enabled = sorted((c for c in channels if c.enabled), key=lambda c: CHANNEL_ORDER[c.type])
    results: Dict[ChannelType, PricingCalculation] = {
        channel.type: calculate_channel(total_cost, tax_percent, channel) for channel in enabled
    }

    if not results:
        logger.debug("Nenhum canal habilitado para cálculo")
        return ChannelsSummary()

    calculations = list(results.values())
    ranking: List[ChannelType] = [r.channel_type for r in sorted(calculations, key=_best_key)]
    best: Optional[ChannelType] = ranking[0]
    worst: Optional[ChannelType] = min(calculations, key=_worst_key).channel_type

    margin_sum = sum((r.profit_margin_percent for r in calculations), Decimal("0"))
    average_margin = margin_sum / len(calculations)
    total_revenue = sum((r.selling_price for r in calculations), Decimal("0"))

    summary = ChannelsSummary(
        results=results,
        best_channel=best,
        worst_channel=worst,
        ranking=ranking,
        profitable_count=sum(1 for r in calculations if r.is_profitable),
        total_channel_count=len(calculations),
        average_margin_percent=average_margin,
        total_revenue=total_revenue,
    )

    logger.debug(
        f"Canais calculados: {summary.total_channel_count}, lucrativos: {summary.profitable_count}, "
        f"melhor: {best.value}, pior: {worst.value}"
    )
    return summary
