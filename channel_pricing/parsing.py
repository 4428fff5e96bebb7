"""
Conversão de valores digitados pelo usuário para Decimal.

Aceita números, Decimal e strings no formato brasileiro
('R$ 1.234,56', '15,5%', '12.90').

Regra dos separadores em strings: com vírgula, a vírgula é o separador
decimal e os pontos são de milhar ('1.234,56' -> 1234.56). Sem vírgula,
o ponto é sempre o separador decimal ('1.234' -> 1.234), que é o formato
usado pelo JSON e pelos valores gravados na store.
"""
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .exceptions import ValidationError

_STRIP_RE = re.compile(r"[R$%\s]")

CENTS = Decimal("0.01")


def parse_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Converte um valor para Decimal.

    None e string vazia viram 0 (campo não preenchido no formulário).
    Floats passam por str() para não carregar a representação binária.

    Raises:
        ValidationError: valor não numérico
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, bool):
        raise ValidationError(f"Campo '{field}' deve ser numérico", field=field, value=value)

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = _STRIP_RE.sub("", value)
        if not cleaned:
            return Decimal("0")
        # "1.234,56" -> "1234.56"; "12,5" -> "12.5"; sem vírgula o ponto é decimal
        if "," in cleaned:
            cleaned = cleaned.replace(".", "").replace(",", ".")
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            raise ValidationError(f"Campo '{field}' deve ser numérico: '{value}'", field=field, value=value)
    else:
        raise ValidationError(f"Campo '{field}' deve ser numérico", field=field, value=value)

    if not result.is_finite():
        raise ValidationError(f"Campo '{field}' deve ser um número finito", field=field, value=value)

    return result


def require_non_negative(value: Decimal, field: str) -> Decimal:
    """Garante que o valor não seja negativo"""
    if value < 0:
        raise ValidationError(f"Campo '{field}' não pode ser negativo", field=field, value=value)
    return value


def quantize_cents(value: Decimal) -> Decimal:
    """Arredonda para centavos (meio para cima), sem produzir -0.00. Uso apenas em exibição."""
    rounded = value.quantize(CENTS, rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        return rounded.copy_abs()
    return rounded
