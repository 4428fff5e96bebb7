from decimal import Decimal

import pytest

from channel_pricing import (
    ChannelFees,
    ChannelType,
    SalesChannel,
    ValidationError,
    calculate_all_channels,
    create_default_channel,
)

TOTAL_COST = Decimal("50")
TAX_PERCENT = Decimal("10")


def _channel(channel_type, price, enabled=True, **fees) -> SalesChannel:
    return SalesChannel(
        type=channel_type,
        enabled=enabled,
        selling_price=Decimal(price),
        fees=ChannelFees(**{k: Decimal(v) for k, v in fees.items()}),
    )


def _fba():
    return _channel(ChannelType.AMAZON_FBA, "150", commission_percent="15",
                    fulfillment_fee="12", advertising_percent="5")


def test_summary_best_worst_and_counts():
    """Testa resumo com canais de lucros diferentes"""
    channels = [
        _channel(ChannelType.SITE_PROPRIO, "40"),
        _channel(ChannelType.SHOPEE, "100", commission_percent="12"),
        _fba(),
    ]

    summary = calculate_all_channels(TOTAL_COST, TAX_PERCENT, channels)

    assert summary.best_channel == ChannelType.AMAZON_FBA
    assert summary.worst_channel == ChannelType.SITE_PROPRIO
    assert summary.ranking == [ChannelType.AMAZON_FBA, ChannelType.SHOPEE, ChannelType.SITE_PROPRIO]
    assert summary.profitable_count == 2
    assert summary.total_channel_count == 3
    assert summary.model_dump(mode="json")["average_margin_percent"] == "10.28"
    assert summary.total_revenue == Decimal("290.00")


def test_results_follow_enumeration_order():
    """Testa se os resultados seguem a ordem canônica dos canais"""
    channels = [
        _channel(ChannelType.MARKETPLACE, "100"),
        _fba(),
        _channel(ChannelType.SITE_PROPRIO, "100"),
    ]

    summary = calculate_all_channels(TOTAL_COST, TAX_PERCENT, channels)

    assert list(summary.results.keys()) == [
        ChannelType.SITE_PROPRIO, ChannelType.AMAZON_FBA, ChannelType.MARKETPLACE,
    ]


def test_best_is_consistent_with_all_results():
    """Testa se melhor/pior canal são consistentes com os lucros calculados"""
    channels = [
        _channel(ChannelType.SITE_PROPRIO, "80"),
        _channel(ChannelType.MERCADO_LIVRE_ME1, "120", commission_percent="18", shipping_cost="20"),
        _channel(ChannelType.SHOPEE, "95", commission_percent="12", fixed_fee="3"),
        _fba(),
    ]

    summary = calculate_all_channels(TOTAL_COST, TAX_PERCENT, channels)
    best = summary.results[summary.best_channel].net_profit
    worst = summary.results[summary.worst_channel].net_profit

    for result in summary.results.values():
        assert best >= result.net_profit
        assert worst <= result.net_profit


def test_tie_resolved_by_enumeration_order():
    """Testa empate exato: vence o canal declarado primeiro na enumeração"""
    full = _channel(ChannelType.MERCADO_LIVRE_FULL, "150", commission_percent="15",
                    fulfillment_fee="12", advertising_percent="5")

    summary = calculate_all_channels(TOTAL_COST, TAX_PERCENT, [full, _fba()])

    assert summary.results[ChannelType.AMAZON_FBA].net_profit == Decimal("53.00")
    assert summary.results[ChannelType.MERCADO_LIVRE_FULL].net_profit == Decimal("53.00")
    assert summary.best_channel == ChannelType.AMAZON_FBA
    assert summary.worst_channel == ChannelType.AMAZON_FBA

    # Ordem de entrada não muda o resultado
    reversed_summary = calculate_all_channels(TOTAL_COST, TAX_PERCENT, [_fba(), full])
    assert reversed_summary.best_channel == ChannelType.AMAZON_FBA


def test_tie_on_profit_resolved_by_channel_costs():
    """Testa empate de lucro: menor custo de canal vence, maior custo é o pior"""
    # 108 - 50 - 5 = 53 sem taxas de canal
    marketplace = _channel(ChannelType.MARKETPLACE, "108")

    summary = calculate_all_channels(TOTAL_COST, TAX_PERCENT, [_fba(), marketplace])

    assert summary.best_channel == ChannelType.MARKETPLACE
    assert summary.worst_channel == ChannelType.AMAZON_FBA
    assert summary.ranking == [ChannelType.MARKETPLACE, ChannelType.AMAZON_FBA]


def test_sub_cent_profit_difference_decides_best_channel():
    """Testa se diferença de lucro abaixo de um centavo ainda decide o melhor canal"""
    site = _channel(ChannelType.SITE_PROPRIO, "108.001")
    marketplace = _channel(ChannelType.MARKETPLACE, "108.004")

    summary = calculate_all_channels(TOTAL_COST, TAX_PERCENT, [site, marketplace])

    assert summary.best_channel == ChannelType.MARKETPLACE
    assert summary.worst_channel == ChannelType.SITE_PROPRIO
    assert summary.ranking == [ChannelType.MARKETPLACE, ChannelType.SITE_PROPRIO]
    assert summary.profitable_count == 2


def test_disabled_channels_are_excluded():
    """Testa se canais desabilitados nunca aparecem nos resultados"""
    channels = [
        _fba(),
        _channel(ChannelType.SHOPEE, "500", enabled=False, commission_percent="12"),
    ]

    summary = calculate_all_channels(TOTAL_COST, TAX_PERCENT, channels)

    assert ChannelType.SHOPEE not in summary.results
    assert summary.best_channel == ChannelType.AMAZON_FBA
    assert summary.total_channel_count == 1


def test_no_enabled_channels_returns_empty_summary():
    """Testa resumo vazio quando nenhum canal está habilitado"""
    channels = [create_default_channel(channel_type) for channel_type in ChannelType]

    summary = calculate_all_channels(TOTAL_COST, TAX_PERCENT, channels)

    assert summary.results == {}
    assert summary.best_channel is None
    assert summary.worst_channel is None
    assert summary.profitable_count == 0
    assert summary.total_channel_count == 0

    assert calculate_all_channels(TOTAL_COST, TAX_PERCENT, []).best_channel is None


def test_duplicate_channel_types_raise():
    """Testa se tipo de canal repetido levanta ValidationError"""
    with pytest.raises(ValidationError) as exc_info:
        calculate_all_channels(TOTAL_COST, TAX_PERCENT, [_fba(), _fba()])

    assert exc_info.value.field == "type"


def test_invalid_input_is_not_skipped():
    """Testa se entrada inválida interrompe o cálculo em vez de ser ignorada"""
    with pytest.raises(ValidationError):
        calculate_all_channels(Decimal("-5"), TAX_PERCENT, [_fba()])


def test_aggregation_is_idempotent():
    channels = [_fba(), _channel(ChannelType.SHOPEE, "100", commission_percent="12")]

    assert calculate_all_channels(TOTAL_COST, TAX_PERCENT, channels) == \
        calculate_all_channels(TOTAL_COST, TAX_PERCENT, channels)
