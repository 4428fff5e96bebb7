# -*- coding: utf-8 -*-
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from config import settings
from channel_pricing import (
    ChannelsSummary,
    ChannelType,
    PersistenceError,
    PriceBreakdown,
    PricingCalculation,
    ProductCost,
    SalesChannel,
    SqlChannelStore,
    ValidationError,
    calculate_all_channels,
    calculate_channel,
    create_empty_channel,
    get_breakdown,
    get_supported_channels,
    parse_channel_type,
    profile_for,
    suggest_prices,
    validate_fees_for,
)
from channel_pricing.aggregator import check_unique_types
from channel_pricing.manager import complete_channels
from channel_pricing.models import FEE_FIELDS
from channel_pricing.parsing import parse_decimal, require_non_negative
from channel_pricing.store import Base

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Database configuration for persistent channel sets
# -----------------------------------------------------------------------------

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, future=True, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.app_slug} iniciado (dev_mode={settings.dev_mode})")
    yield


app = FastAPI(title="Channel Pricing API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_error(e: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": e.message, "field": e.field},
    )


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.app_slug}


# ============================================================================
# PRICING ENDPOINTS
# ============================================================================

class CalculateRequest(BaseModel):
    """Request para cálculo de um canal"""
    product: ProductCost
    channel: SalesChannel


class CalculateAllRequest(BaseModel):
    """Request para cálculo comparativo de todos os canais"""
    product: ProductCost
    channels: List[SalesChannel] = Field(default_factory=list)


class SuggestPricesRequest(BaseModel):
    product: ProductCost
    channel: SalesChannel
    margins: Optional[List[int]] = Field(None, description="Margens-alvo (%); padrão 10 a 40")


class PriceSuggestion(BaseModel):
    margin_percent: int
    price: Optional[Decimal] = None


class SuggestPricesResponse(BaseModel):
    channel_type: ChannelType
    suggestions: List[PriceSuggestion]


class PriceValidateRequest(BaseModel):
    """Request para validação de entrada (valores ainda não convertidos)"""
    item_cost: Any = None
    packaging_cost: Any = None
    tax_percent: Any = None
    channel: Any = None
    selling_price: Any = None
    fees: Dict[str, Any] = Field(default_factory=dict)


class ChannelSetPayload(BaseModel):
    channels: List[SalesChannel] = Field(default_factory=list)


class ChannelSetResponse(BaseModel):
    product_id: str
    channels: List[SalesChannel]


@app.get("/pricing/channels")
async def pricing_channels():
    """
    Lista canais suportados com nome, campos aplicáveis e taxas padrão.
    """
    channels = []
    for channel in get_supported_channels():
        profile = profile_for(channel)
        channels.append({
            "type": profile.type.value,
            "name": profile.name,
            "description": profile.description,
            "applicable_fields": [f for f in FEE_FIELDS if f in profile.applicable_fields],
            "default_fees": profile.default_fees.model_dump(mode="json"),
        })

    return {
        "supported_channels": get_supported_channels(),
        "channels": channels,
    }


@app.get("/pricing/channels/{channel_type}/default", response_model=SalesChannel)
async def pricing_channel_default(channel_type: str):
    """Configuração inicial (desabilitada) de um canal"""
    try:
        return create_empty_channel(parse_channel_type(channel_type))
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "message": e.message,
                "field": e.field,
                "supported_channels": get_supported_channels(),
            }
        )


@app.post("/pricing/calculate", response_model=PricingCalculation)
async def pricing_calculate(request: CalculateRequest):
    """
    Calcula lucro, margem, markup e ROI de um canal.

    Raises:
        422: entrada inválida
    """
    try:
        return calculate_channel(request.product.total_cost, request.product.tax_percent, request.channel)
    except ValidationError as e:
        raise _validation_error(e)


@app.post("/pricing/calculate-all", response_model=ChannelsSummary)
async def pricing_calculate_all(request: CalculateAllRequest):
    """
    Calcula todos os canais habilitados e indica melhor e pior canal.

    Raises:
        422: canal duplicado ou entrada inválida
    """
    try:
        return calculate_all_channels(request.product.total_cost, request.product.tax_percent, request.channels)
    except ValidationError as e:
        raise _validation_error(e)


@app.post("/pricing/suggest-prices", response_model=SuggestPricesResponse)
async def pricing_suggest_prices(request: SuggestPricesRequest):
    """Preço de venda sugerido para cada margem-alvo"""
    try:
        prices = suggest_prices(
            request.product.total_cost,
            request.product.tax_percent,
            request.channel,
            request.margins,
        )
    except ValidationError as e:
        raise _validation_error(e)

    return SuggestPricesResponse(
        channel_type=request.channel.type,
        suggestions=[PriceSuggestion(margin_percent=m, price=p) for m, p in prices.items()],
    )


@app.post("/pricing/breakdown", response_model=PriceBreakdown)
async def pricing_breakdown(request: CalculateRequest):
    """Passo a passo do cálculo de um canal"""
    try:
        return get_breakdown(request.product.total_cost, request.product.tax_percent, request.channel)
    except ValidationError as e:
        raise _validation_error(e)


@app.post("/pricing/validate")
async def pricing_validate(request: PriceValidateRequest):
    """
    Valida entradas de precificação.

    Returns:
        200: Válido
        422: Inválido (com lista de erros)
    """
    errors = []

    for field in ("item_cost", "packaging_cost", "tax_percent", "selling_price"):
        try:
            require_non_negative(parse_decimal(getattr(request, field), field), field)
        except ValidationError as e:
            errors.append(e.message)

    channel_type = None
    if request.channel is None:
        errors.append("Campo 'channel' é obrigatório")
    else:
        try:
            channel_type = parse_channel_type(request.channel)
        except ValidationError as e:
            errors.append(e.message)

    fees_ok = True
    for field, value in request.fees.items():
        if field not in FEE_FIELDS:
            errors.append(f"Taxa '{field}' não existe")
            fees_ok = False
            continue
        try:
            require_non_negative(parse_decimal(value, field), field)
        except ValidationError as e:
            errors.append(e.message)
            fees_ok = False

    if channel_type is not None and fees_ok:
        channel = create_empty_channel(channel_type)
        fees = channel.fees.model_copy(
            update={field: parse_decimal(value, field) for field, value in request.fees.items()}
        )
        try:
            validate_fees_for(channel_type, fees)
        except ValidationError as e:
            errors.append(e.message)

    if errors:
        raise HTTPException(
            status_code=422,
            detail={"errors": errors}
        )

    return {"valid": True, "message": "Entrada válida"}


# -----------------------------------------------------------------------------
# API endpoints for channel persistence
# -----------------------------------------------------------------------------

@app.get("/products/{product_id}/channels", response_model=ChannelSetResponse)
async def get_product_channels(product_id: str, db: Session = Depends(get_db)):
    """Canais salvos do produto, completados com o padrão para cada tipo"""
    store = SqlChannelStore(db)
    try:
        channels = store.load_channels(product_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail={"message": e.message})

    return ChannelSetResponse(product_id=product_id, channels=list(complete_channels(channels).values()))


@app.put("/products/{product_id}/channels", response_model=ChannelSetResponse)
async def save_product_channels(product_id: str, payload: ChannelSetPayload, db: Session = Depends(get_db)):
    """
    Substitui o conjunto de canais do produto.

    Raises:
        422: canal duplicado ou taxa não aplicável ao canal
        503: falha ao gravar
    """
    try:
        check_unique_types(payload.channels)
        for channel in payload.channels:
            validate_fees_for(channel.type, channel.fees)
    except ValidationError as e:
        raise _validation_error(e)

    store = SqlChannelStore(db)
    try:
        stored = store.save_channels(product_id, payload.channels)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail={"message": e.message})

    return ChannelSetResponse(product_id=product_id, channels=list(complete_channels(stored).values()))


# ========= MAIN PARA RODAR DEBUGANDO =========


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="127.0.0.1", port=5002, reload=True)
