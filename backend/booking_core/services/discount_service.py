# backend/booking_core/services/discount_service.py
"""
Discount Service

Two discount sources:
- Coupons: a flat percentage off a booking's package total.
- Deals: business-scoped, applied by deal code to a priced order of services
  and sub-services. The deal scope decides which lines are discounted:
  every line ("all"), the sub-services of one service ("services"), or one
  sub-service ("subservices").

A missing, disabled or expired coupon/deal never fails the request; pricing
degrades to "no discount" with a zero discount on every line.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.enums import DealScope
from ..models.discount import Coupon, Deal
from ..repositories.discount_repository import CouponRepository, DealRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_money(value: Any) -> Decimal:
    """Quantize to cents, rounding half up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage_of(amount: Decimal, percentage: Any) -> Decimal:
    return to_money(Decimal(str(amount)) * Decimal(str(percentage)) / HUNDRED)


@dataclass
class PricedSubService:
    id: str
    price: Decimal
    discount_amount: Decimal = Decimal("0.00")

    @property
    def discounted_price(self) -> Decimal:
        return to_money(self.price - self.discount_amount)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "price": str(self.price),
            "discount_amount": str(self.discount_amount),
            "discounted_price": str(self.discounted_price),
        }


@dataclass
class PricedService:
    id: str
    sub_services: List[PricedSubService] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((s.price for s in self.sub_services), Decimal("0")))

    @property
    def discounted_price(self) -> Decimal:
        return to_money(sum((s.discounted_price for s in self.sub_services), Decimal("0")))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subtotal": str(self.subtotal),
            "discounted_price": str(self.discounted_price),
            "sub_services": [s.to_dict() for s in self.sub_services],
        }


@dataclass
class PricedOrder:
    services: List[PricedService]
    deal_applied: Optional[Dict[str, Any]] = None

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((s.subtotal for s in self.services), Decimal("0")))

    @property
    def total_discount(self) -> Decimal:
        return to_money(self.subtotal - self.total_payable_amount)

    @property
    def total_payable_amount(self) -> Decimal:
        return to_money(sum((s.discounted_price for s in self.services), Decimal("0")))


def _line_eligible(
    deal: Optional[Deal], scope: Optional[DealScope], service_id: str, sub_service_id: str
) -> bool:
    if deal is None or scope is None:
        return False
    if scope is DealScope.ALL:
        return True
    if scope is DealScope.SERVICES:
        return service_id == deal.target_id
    return sub_service_id == deal.target_id


class DiscountService(BaseService):
    """Coupon resolution and deal-based order pricing."""

    def __init__(
        self,
        db: Session,
        coupon_repository: Optional[CouponRepository] = None,
        deal_repository: Optional[DealRepository] = None,
    ):
        super().__init__(db)
        self.coupon_repository = coupon_repository or RepositoryFactory.create_coupon_repository(db)
        self.deal_repository = deal_repository or RepositoryFactory.create_deal_repository(db)

    # Coupons

    def resolve_coupon(
        self, id_or_code: Optional[str], today: Optional[date] = None
    ) -> Optional[Coupon]:
        """Return the enabled, unexpired coupon for an id or code, or None."""
        if not id_or_code:
            return None
        coupon = self.coupon_repository.find_active(id_or_code.strip(), today or date.today())
        if coupon is None:
            self.logger.info("Coupon not applied", extra={"coupon": id_or_code})
        return coupon

    @staticmethod
    def apply_coupon(total: Any, coupon: Optional[Coupon]) -> Decimal:
        """Amount owed after the coupon; the total itself when there is no coupon."""
        total = to_money(total)
        if coupon is None:
            return total
        return to_money(total - percentage_of(total, coupon.discount))

    # Deals

    def resolve_deal(
        self, business_id: str, deal_code: Optional[str], today: Optional[date] = None
    ) -> Optional[Deal]:
        if not deal_code:
            return None
        deal = self.deal_repository.find_active(
            business_id, deal_code.strip(), today or date.today()
        )
        if deal is None:
            self.logger.info(
                "Deal not applied",
                extra={"business_id": business_id, "deal_code": deal_code},
            )
        return deal

    @staticmethod
    def price_order(
        services: Sequence[Mapping[str, Any]], deal: Optional[Deal] = None
    ) -> PricedOrder:
        """
        Build the per-line discount breakdown for ``services``.

        Each service is ``{"id": ..., "sub_services": [{"id": ..., "price": ...}]}``.
        """
        scope = DealScope.parse(deal.scope) if deal is not None else None
        percentage = Decimal(str(deal.percentage)) if deal is not None else Decimal("0")

        priced: List[PricedService] = []
        for service in services:
            service_id = str(service["id"])
            lines: List[PricedSubService] = []
            for sub in service.get("sub_services") or []:
                line = PricedSubService(id=str(sub["id"]), price=to_money(sub["price"]))
                if _line_eligible(deal, scope, service_id, line.id):
                    line.discount_amount = percentage_of(line.price, percentage)
                lines.append(line)
            priced.append(PricedService(id=service_id, sub_services=lines))

        deal_applied = None
        if deal is not None:
            deal_applied = {
                "name": deal.name,
                "deal_code": deal.deal_code,
                "percentage_discount": deal.percentage,
                "scope": scope.value,
            }
        return PricedOrder(services=priced, deal_applied=deal_applied)

    @BaseService.measure_operation("price_order")
    def price_with_deal(
        self,
        business_id: str,
        services: Sequence[Mapping[str, Any]],
        deal_code: Optional[str] = None,
        today: Optional[date] = None,
    ) -> PricedOrder:
        deal = self.resolve_deal(business_id, deal_code, today)
        return self.price_order(services, deal)
