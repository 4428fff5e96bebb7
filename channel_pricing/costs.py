from decimal import Decimal
from typing import Any

from .parsing import parse_decimal, require_non_negative


def calculate_total_cost(item_cost: Any, packaging_cost: Any = Decimal("0")) -> Decimal:
    """
    Custo de chegada do produto (item + embalagem).

    O imposto não entra aqui: cada canal aplica o percentual de imposto
    no próprio cálculo.

    Raises:
        ValidationError: custo negativo ou não numérico
    """
    item = require_non_negative(parse_decimal(item_cost, "item_cost"), "item_cost")
    packaging = require_non_negative(parse_decimal(packaging_cost, "packaging_cost"), "packaging_cost")
    return item + packaging


def build_product_cost(item_cost: Any = Decimal("0"), packaging_cost: Any = Decimal("0"),
                       tax_percent: Any = Decimal("0")):
    """
    Valida as entradas e monta o snapshot de custos do produto.

    Returns:
        ProductCost

    Raises:
        ValidationError: valor negativo ou não numérico
    """
    # models importa este módulo para ProductCost.total_cost
    from .models import ProductCost

    item = require_non_negative(parse_decimal(item_cost, "item_cost"), "item_cost")
    packaging = require_non_negative(parse_decimal(packaging_cost, "packaging_cost"), "packaging_cost")
    tax = require_non_negative(parse_decimal(tax_percent, "tax_percent"), "tax_percent")
    return ProductCost(item_cost=item, packaging_cost=packaging, tax_percent=tax)
