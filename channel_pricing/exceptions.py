from typing import Any, Dict, Optional


class PricingError(Exception):
    """Base exception para erros do motor de precificação"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(PricingError, ValueError):
    """Entrada inválida (valor negativo, canal duplicado, taxa não aplicável...)"""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        self.field = field
        self.value = value
        super().__init__(message, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        """Converte o primeiro erro de um pydantic.ValidationError"""
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        return cls(
            first.get("msg", str(exc)),
            field=field,
            value=first.get("input"),
            details={"errors": [error.get("msg") for error in errors]},
        )


class UnknownChannelTypeError(ValidationError):
    """Tipo de canal fora do conjunto suportado"""
    pass


class PersistenceError(PricingError):
    """Falha ao carregar ou salvar canais na camada de persistência"""
    pass


class ConfigurationError(PricingError):
    """Configuração obrigatória ausente ou inválida"""
    pass
