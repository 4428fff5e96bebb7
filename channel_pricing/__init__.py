from .aggregator import calculate_all_channels
from .calculator import (
    ChannelCalculator,
    calculate_break_even_price,
    calculate_channel,
    calculate_target_price,
    get_breakdown,
    suggest_prices,
)
from .costs import build_product_cost, calculate_total_cost
from .exceptions import (
    ConfigurationError,
    PersistenceError,
    PricingError,
    UnknownChannelTypeError,
    ValidationError,
)
from .fees import (
    ChannelProfile,
    create_default_channel,
    create_empty_channel,
    get_supported_channels,
    is_supported,
    parse_channel_type,
    profile_for,
    validate_fees_for,
)
from .manager import ChannelManager
from .models import (
    ChannelFees,
    ChannelsSummary,
    ChannelType,
    PriceBreakdown,
    PricingCalculation,
    ProductCost,
    ProfitabilityStatus,
    SalesChannel,
)
from .store import ChannelStore, HttpChannelStore, InMemoryChannelStore, SqlChannelStore

__all__ = [
    "ChannelType",
    "ChannelFees",
    "SalesChannel",
    "ProductCost",
    "PricingCalculation",
    "ChannelsSummary",
    "PriceBreakdown",
    "ProfitabilityStatus",
    "ChannelProfile",
    "ChannelCalculator",
    "ChannelManager",
    "ChannelStore",
    "InMemoryChannelStore",
    "SqlChannelStore",
    "HttpChannelStore",
    "PricingError",
    "ValidationError",
    "UnknownChannelTypeError",
    "PersistenceError",
    "ConfigurationError",
    "calculate_total_cost",
    "build_product_cost",
    "calculate_channel",
    "calculate_all_channels",
    "calculate_break_even_price",
    "calculate_target_price",
    "suggest_prices",
    "get_breakdown",
    "create_default_channel",
    "create_empty_channel",
    "get_supported_channels",
    "is_supported",
    "parse_channel_type",
    "profile_for",
    "validate_fees_for",
]
