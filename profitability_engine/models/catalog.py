from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Union


class AlgorithmRef(BaseModel):
    """Catalog algorithm a device hashes with."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Stable catalog key, e.g. 'sha256'")
    name: str = Field(default="", description="Display name")


class Device(BaseModel):
    """Mining hardware entry from the catalog (read-only to the engine)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique device identifier")
    name: str = Field(default="", description="Display name")
    hashrate: Union[str, float, None] = Field(
        None, description="Hashrate magnitude as entered by admins"
    )
    hashrate_unit: str = Field(default="", description="Hashrate unit, e.g. 'TH/s'")
    power_w: Optional[float] = Field(None, description="Power draw in watts")
    algorithm: AlgorithmRef = Field(..., description="Algorithm reference")
    efficiency: Union[str, float, None] = Field(
        None, description="Vendor efficiency figure, e.g. 17.5"
    )
    efficiency_unit: Optional[str] = Field(None, description="Efficiency unit, e.g. 'J/TH'")
    coin_ids: List[str] = Field(
        default_factory=list,
        description="Explicit mineable coins; empty means every coin on the algorithm",
    )


class VendorListing(BaseModel):
    """One vendor's offer for a device."""

    model_config = ConfigDict(frozen=True)

    device_id: str = Field(..., description="Device the listing belongs to")
    price: Union[str, float, None] = Field(None, description="Listed price")
    currency: str = Field(default="USD", description="ISO currency code")
    in_stock: bool = Field(default=True)
    shipping_cost: Union[str, float, None] = Field(
        None, description="Shipping cost in the listing currency"
    )


class Coin(BaseModel):
    """Mineable coin on a catalog algorithm."""

    model_config = ConfigDict(frozen=True)

    id: str
    key: str = Field(..., description="Slug, e.g. 'btc'")
    symbol: str = Field(..., description="Ticker, e.g. 'BTC'")
    name: str = Field(default="")
    algorithm_key: str = Field(..., description="Catalog algorithm key")
