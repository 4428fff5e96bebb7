from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple

from .exceptions import ValidationError
from .fees import profile_for
from .models import (
    FEE_FIELDS,
    PriceBreakdown,
    PricingCalculation,
    ProfitabilityStatus,
    SalesChannel,
)
from .parsing import parse_decimal, quantize_cents, require_non_negative

HUNDRED = Decimal("100")


class ChannelCalculator:
    """
    Calculadora de lucratividade por canal.

    A mesma aritmética vale para todos os canais: o que muda entre eles é
    apenas o perfil de taxas (ver fees.py). O imposto é aplicado sobre o
    custo de chegada do produto, não sobre o preço de venda.
    """

    # Margens (%) usadas nas sugestões de preço
    MARGIN_SUGGESTIONS: Tuple[int, ...] = (10, 15, 20, 25, 30, 35, 40)

    # Limites (%) de margem para classificação
    EXCELLENT_MARGIN = Decimal("30")
    GOOD_MARGIN = Decimal("15")

    def apply_rounding(self, value: Decimal) -> Decimal:
        """Arredonda para centavos (meio para cima), sem produzir -0.00"""
        return quantize_cents(value)

    def validate_inputs(self, total_cost: Any, tax_percent: Any, channel: SalesChannel) -> Tuple[Decimal, Decimal]:
        """
        Valida custo, imposto e canal antes de qualquer conta.

        Raises:
            ValidationError: valor negativo ou não numérico
        """
        if not isinstance(channel, SalesChannel):
            raise ValidationError("Canal inválido", field="channel", value=channel)

        cost = require_non_negative(parse_decimal(total_cost, "total_cost"), "total_cost")
        tax = require_non_negative(parse_decimal(tax_percent, "tax_percent"), "tax_percent")

        require_non_negative(channel.selling_price, "selling_price")
        for field in FEE_FIELDS:
            require_non_negative(getattr(channel.fees, field), field)

        return cost, tax

    def classify(self, margin_percent: Decimal) -> ProfitabilityStatus:
        if margin_percent >= self.EXCELLENT_MARGIN:
            return ProfitabilityStatus.EXCELENTE
        if margin_percent >= self.GOOD_MARGIN:
            return ProfitabilityStatus.BOA
        if margin_percent >= 0:
            return ProfitabilityStatus.BAIXA
        return ProfitabilityStatus.PREJUIZO

    def _absolute_costs(self, total_cost: Decimal, tax_value: Decimal, channel: SalesChannel) -> Decimal:
        """Custos que não dependem do preço de venda"""
        fees = channel.fees
        return (
            total_cost
            + tax_value
            + fees.fixed_fee
            + fees.shipping_cost
            + fees.fulfillment_fee
            + fees.other_fees
        )

    def _price_percent(self, channel: SalesChannel) -> Decimal:
        """Soma dos percentuais cobrados sobre o preço de venda"""
        return channel.fees.commission_percent + channel.fees.advertising_percent

    def calculate(self, total_cost: Any, tax_percent: Any, channel: SalesChannel) -> PricingCalculation:
        """
        Calcula a lucratividade de um canal.

        Canais desabilitados produzem o mesmo resultado numérico; filtrar
        por 'enabled' é responsabilidade de quem chama.

        Args:
            total_cost: Custo de chegada (item + embalagem)
            tax_percent: Percentual de imposto sobre o custo
            channel: Configuração do canal

        Returns:
            PricingCalculation com valores exatos (arredondar só na exibição)

        Raises:
            ValidationError: entrada negativa ou inválida
        """
        total_cost, tax_percent = self.validate_inputs(total_cost, tax_percent, channel)

        price = channel.selling_price
        fees = channel.fees

        # Ordem fixa das operações
        commission_value = price * fees.commission_percent / HUNDRED
        advertising_cost = price * fees.advertising_percent / HUNDRED
        fulfillment_cost = fees.fulfillment_fee
        shipping_cost = fees.shipping_cost
        fixed_fees = fees.fixed_fee
        other_fees = fees.other_fees

        total_channel_costs = (
            commission_value + fixed_fees + shipping_cost + fulfillment_cost + advertising_cost + other_fees
        )

        tax_value = total_cost * tax_percent / HUNDRED
        gross_profit = price - total_cost - tax_value
        net_profit = gross_profit - total_channel_costs

        margin_percent = (net_profit / price) * HUNDRED if price > 0 else Decimal("0")
        # markup e ROI coincidem neste modelo (lucro sobre custo)
        markup_percent = (net_profit / total_cost) * HUNDRED if total_cost > 0 else Decimal("0")
        roi = markup_percent

        is_competitive = channel.competitor_price is None or price <= channel.competitor_price
        within_range = (
            (channel.min_price is None or price >= channel.min_price)
            and (channel.max_price is None or price <= channel.max_price)
        )

        # Valores exatos: comparações e classificação não dependem de arredondamento
        return PricingCalculation(
            channel_type=channel.type,
            channel_name=channel.name or profile_for(channel.type).name,
            selling_price=price,
            total_cost=total_cost,
            tax_value=tax_value,
            commission_value=commission_value,
            advertising_cost=advertising_cost,
            fulfillment_cost=fulfillment_cost,
            shipping_cost=shipping_cost,
            fixed_fees=fixed_fees,
            other_fees=other_fees,
            total_channel_costs=total_channel_costs,
            gross_profit=gross_profit,
            net_profit=net_profit,
            profit_margin_percent=margin_percent,
            markup_percent=markup_percent,
            roi=roi,
            is_profitable=net_profit > 0,
            is_competitive=is_competitive,
            is_within_price_range=within_range,
            break_even_price=self._break_even(total_cost, tax_value, channel),
            profitability_status=self.classify(margin_percent),
        )

    def _break_even(self, total_cost: Decimal, tax_value: Decimal, channel: SalesChannel) -> Optional[Decimal]:
        remaining = 1 - self._price_percent(channel) / HUNDRED
        if remaining <= 0:
            return None
        return self._absolute_costs(total_cost, tax_value, channel) / remaining

    def break_even_price(self, total_cost: Any, tax_percent: Any, channel: SalesChannel) -> Optional[Decimal]:
        """
        Preço de venda em que o lucro líquido é zero.

        Returns:
            Preço arredondado, ou None se comissão + publicidade >= 100%
        """
        total_cost, tax_percent = self.validate_inputs(total_cost, tax_percent, channel)
        tax_value = total_cost * tax_percent / HUNDRED
        price = self._break_even(total_cost, tax_value, channel)
        return self.apply_rounding(price) if price is not None else None

    def target_price(self, total_cost: Any, tax_percent: Any, channel: SalesChannel,
                     target_margin: Any) -> Optional[Decimal]:
        """
        Preço de venda que atinge a margem líquida desejada.

        Preço = Custos absolutos / (1 - %comissão - %publicidade - %margem)

        Returns:
            Preço arredondado, ou None se a soma dos percentuais chega a 100%
        """
        total_cost, tax_percent = self.validate_inputs(total_cost, tax_percent, channel)
        margin = parse_decimal(target_margin, "target_margin")

        tax_value = total_cost * tax_percent / HUNDRED
        denominator = 1 - (self._price_percent(channel) + margin) / HUNDRED
        if denominator <= 0:
            return None

        return self.apply_rounding(self._absolute_costs(total_cost, tax_value, channel) / denominator)

    def suggest_prices(self, total_cost: Any, tax_percent: Any, channel: SalesChannel,
                       margins: Optional[Iterable[int]] = None) -> Dict[int, Optional[Decimal]]:
        """Preços sugeridos para cada margem-alvo"""
        margins = self.MARGIN_SUGGESTIONS if margins is None else tuple(margins)
        return {
            margin: self.target_price(total_cost, tax_percent, channel, margin)
            for margin in margins
        }

    def get_breakdown(self, total_cost: Any, tax_percent: Any, channel: SalesChannel) -> PriceBreakdown:
        """
        Retorna breakdown detalhado do cálculo do canal.
        Mostra todos os componentes de custo, taxas e lucro, em centavos.
        """
        result = self.calculate(total_cost, tax_percent, channel)
        fees = channel.fees
        tax_percent = parse_decimal(tax_percent, "tax_percent")
        cents = self.apply_rounding

        steps = [
            {"label": "Preço de venda", "value": cents(result.selling_price)},
            {"label": "Custo do produto (item + embalagem)", "value": cents(result.total_cost)},
            {"label": f"Impostos ({tax_percent}% s/ custo)", "value": cents(result.tax_value)},
            {"label": "Lucro bruto", "value": cents(result.gross_profit)},
            {"label": f"Comissão ({fees.commission_percent}%)", "value": cents(result.commission_value)},
            {"label": "Taxa fixa", "value": cents(result.fixed_fees)},
            {"label": "Frete", "value": cents(result.shipping_cost)},
            {"label": "Fulfillment", "value": cents(result.fulfillment_cost)},
            {"label": f"Publicidade ({fees.advertising_percent}%)", "value": cents(result.advertising_cost)},
            {"label": "Outras taxas", "value": cents(result.other_fees)},
            {"label": "Total de custos do canal", "value": cents(result.total_channel_costs)},
            {"label": "Lucro líquido", "value": cents(result.net_profit)},
        ]

        notes = [
            f"Canal: {result.channel_name}",
            f"Margem líquida: {cents(result.profit_margin_percent)}% ({result.profitability_status.value})",
            f"ROI: {cents(result.roi)}%",
        ]
        if result.break_even_price is not None:
            notes.append(f"Preço de equilíbrio: R$ {cents(result.break_even_price)}")
        if not result.is_competitive:
            notes.append(f"Preço acima do concorrente (R$ {channel.competitor_price})")
        if not result.is_within_price_range:
            notes.append("Preço fora da faixa mínima/máxima configurada")

        return PriceBreakdown(steps=steps, notes=notes)


_calculator = ChannelCalculator()


def calculate_channel(total_cost: Any, tax_percent: Any, channel: SalesChannel) -> PricingCalculation:
    """Calcula a lucratividade de um canal (ver ChannelCalculator.calculate)"""
    return _calculator.calculate(total_cost, tax_percent, channel)


def calculate_break_even_price(total_cost: Any, tax_percent: Any, channel: SalesChannel) -> Optional[Decimal]:
    return _calculator.break_even_price(total_cost, tax_percent, channel)


def calculate_target_price(total_cost: Any, tax_percent: Any, channel: SalesChannel,
                           target_margin: Any) -> Optional[Decimal]:
    return _calculator.target_price(total_cost, tax_percent, channel, target_margin)


def suggest_prices(total_cost: Any, tax_percent: Any, channel: SalesChannel,
                   margins: Optional[Iterable[int]] = None) -> Dict[int, Optional[Decimal]]:
    return _calculator.suggest_prices(total_cost, tax_percent, channel, margins)


def get_breakdown(total_cost: Any, tax_percent: Any, channel: SalesChannel) -> PriceBreakdown:
    return _calculator.get_breakdown(total_cost, tax_percent, channel)
