from typing import List, Optional, Tuple, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from pos_engine.services.errors import INVALID_CONFIGURATION

# ---------------------------------------------------------------------
# INGREDIENTS
# ---------------------------------------------------------------------

class CompositionEntry(BaseModel):
    """One line of a batch recipe: `quantity` units of another ingredient."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    ingredient_id: str = Field(validation_alias=AliasChoices("ingredient_id", "ingredientId", "id"))
    quantity: float = Field(0, ge=0)

    @field_validator("ingredient_id", mode="before")
    @classmethod
    def v_id(cls, v):
        return str(v) if v is not None else v


class Ingredient(BaseModel):
    """Registry record. Compound when it carries a composition and a positive yield."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    name: Optional[str] = None
    net_quantity: float = Field(
        0, validation_alias=AliasChoices("net_quantity", "netQuantity", "netConfirmedQuantity")
    )
    unit_buy_price: float = Field(0, ge=0, alias="unitBuyPrice")
    unit: Optional[str] = None
    waste_percent: float = Field(0, ge=0, alias="wastePercent")
    composition: Tuple[CompositionEntry, ...] = ()
    composition_yield: Optional[float] = Field(None, alias="compositionYield")

    @field_validator("id", mode="before")
    @classmethod
    def v_id(cls, v):
        return str(v) if v is not None else v

    @field_validator("composition", mode="before")
    @classmethod
    def v_composition(cls, v):
        # registry rows sometimes store null instead of []
        return v or ()

    @property
    def is_compound(self) -> bool:
        return bool(self.composition) and (self.composition_yield or 0) > 0


# ---------------------------------------------------------------------
# MENU + ADD-ONS
# ---------------------------------------------------------------------

class MenuItem(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    name: str = ""
    price: float = Field(0, ge=0)  # selling price
    base_price: Optional[float] = Field(None, alias="basePrice")  # cost reference
    recipe: Tuple[CompositionEntry, ...] = ()

    @field_validator("id", mode="before")
    @classmethod
    def v_id(cls, v):
        return str(v) if v is not None else v

    @field_validator("recipe", mode="before")
    @classmethod
    def v_recipe(cls, v):
        return v or ()


def addon_config_issues(addon_id, name, min_q, max_q, default_q) -> List["ValidationIssue"]:
    issues = []
    label = name or addon_id
    if max_q is not None and min_q > max_q:
        issues.append(ValidationIssue(
            code=INVALID_CONFIGURATION,
            message=f"{label}: minimal {min_q} melebihi maksimal {max_q}",
            addon_id=addon_id, addon_name=name,
        ))
    if default_q is not None:
        upper = max_q if max_q is not None else float("inf")
        if not (min_q <= default_q <= upper):
            issues.append(ValidationIssue(
                code=INVALID_CONFIGURATION,
                message=f"{label}: jumlah default {default_q} di luar batas",
                addon_id=addon_id, addon_name=name,
            ))
    return issues


class AddonDefinition(BaseModel):
    """Catalog entry for an optional extra (syrup, extra shot, oat milk...)."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    name: str = ""
    unit_price: float = Field(0, ge=0, alias="unitPrice")
    min_quantity: int = Field(0, ge=0, alias="minQuantity")
    max_quantity: Optional[int] = Field(None, alias="maxQuantity")
    default_quantity: Optional[int] = Field(None, alias="defaultQuantity")
    is_required: bool = Field(False, alias="isRequired")
    is_active: bool = Field(True, alias="isActive")

    @model_validator(mode="before")
    @classmethod
    def v_price_fallback(cls, data):
        # per-item override beats catalog price, then legacy field names
        if isinstance(data, dict) and data.get("unitPrice") is None and data.get("unit_price") is None:
            for key in ("priceOverride", "price", "basePrice"):
                if data.get(key) is not None:
                    data = {**data, "unitPrice": data[key]}
                    break
        return data

    @field_validator("id", mode="before")
    @classmethod
    def v_id(cls, v):
        return str(v) if v is not None else v

    @field_validator("min_quantity", mode="before")
    @classmethod
    def v_min(cls, v):
        return 0 if v is None else v

    @model_validator(mode="after")
    def v_bounds(self):
        issues = addon_config_issues(
            self.id, self.name, self.min_quantity, self.max_quantity, self.default_quantity
        )
        if issues:
            raise ValueError("; ".join(i.message for i in issues))
        return self


class AddonSelection(BaseModel):
    """Chosen add-on on a cart line; price frozen at the moment it was picked."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    addon_id: str = Field(validation_alias=AliasChoices("addon_id", "addonId", "id"))
    name: str = ""
    quantity: int = Field(0, ge=0)
    unit_price_at_selection: float = Field(
        0, ge=0, validation_alias=AliasChoices("unit_price_at_selection", "unitPriceAtSelection", "unitPrice")
    )


class RequestedAddon(BaseModel):
    """Raw user request for an add-on. Not validated against the catalog yet."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    addon_id: str = Field(validation_alias=AliasChoices("addon_id", "addonId", "id"))
    quantity: int = Field(0, validation_alias=AliasChoices("quantity", "qty"))

    @field_validator("addon_id", mode="before")
    @classmethod
    def v_id(cls, v):
        return str(v) if v is not None else v


# ---------------------------------------------------------------------
# CART + ORDER
# ---------------------------------------------------------------------

class CartLine(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    item_id: str
    name: str = ""
    base_price: float = Field(0, ge=0)
    unit_price: float = Field(0, ge=0)
    addon_selections: Tuple[AddonSelection, ...] = ()
    quantity: int = Field(1, ge=1)
    notes: str = ""
    identity_key: str


class ValidationIssue(BaseModel):
    """One unmet constraint, shown inline next to the add-on or line it belongs to."""
    code: str
    message: str
    addon_id: Optional[str] = None
    addon_name: Optional[str] = None


class LineResult(BaseModel):
    line: Optional[CartLine] = None
    errors: List[ValidationIssue] = Field(default_factory=list)
    unmet_required: List[str] = Field(default_factory=list)  # names, drives disabled "skip" button

    @property
    def ok(self) -> bool:
        return self.line is not None and not self.errors


class Totals(BaseModel):
    subtotal: float
    discount: float
    fee: float
    total: float


class OrderDraft(BaseModel):
    """What the cashier screen persists between reloads."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    cart: List[CartLine] = Field(default_factory=list)
    discount_rp: float = Field(0, ge=0, alias="discountRp")
    discount_pct: float = Field(0, ge=0, le=100, alias="discountPct")
    customer_name: str = Field("", alias="customerName")
    customer_phone: str = Field("", alias="customerPhone")
    send_notif: bool = Field(False, alias="sendNotif")
    payment_method: str = Field("QRIS", alias="paymentMethod")
    timestamp: Optional[Union[int, float, str]] = None
