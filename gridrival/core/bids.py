"""Bid bands and the per-round bid book."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from gridrival.core.assets import Asset, BatteryKind, HydroKind
from gridrival.core.conditions import RoundConditions
from gridrival.core.constants import DEFAULT_MAX_BID_BANDS, MW_TOLERANCE, PRICE_CAP_MWH, PRICE_FLOOR_MWH
from gridrival.core.errors import NotFoundError, PhaseError, ValidationError
from gridrival.core.periods import ROUND_PERIODS, TimePeriod

logger = logging.getLogger(__name__)

BidKey = Tuple[str, str, TimePeriod]


class BatteryMode(Enum):
    """What a battery does in a period."""
    CHARGE = "charge"
    IDLE = "idle"
    DISCHARGE = "discharge"


def _finite(value: Any, label: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be finite")
    return number


@dataclass(frozen=True)
class BidBand:
    """One price/quantity step of an offer."""

    price_mwh: float
    offered_mw: float

    @classmethod
    def from_value(cls, value: Union[BidBand, Mapping[str, Any], Sequence[float]]) -> BidBand:
        """Build a band from a BidBand, a mapping or a ``(price, mw)`` pair."""
        if isinstance(value, BidBand):
            return value
        if isinstance(value, Mapping):
            price = value.get("price_mwh", value.get("price"))
            quantity = value.get("offered_mw", value.get("quantity_mw"))
            return cls(_finite(price, "price_mwh"), _finite(quantity, "offered_mw"))
        try:
            price, quantity = value
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Cannot interpret bid band {value!r}") from exc
        return cls(_finite(price, "price_mwh"), _finite(quantity, "offered_mw"))

    def to_dict(self) -> Dict[str, float]:
        return {"price_mwh": self.price_mwh, "offered_mw": self.offered_mw}


@dataclass(frozen=True)
class AssetBid:
    """A team's submission for one asset in one period."""

    team_id: str
    asset_id: str
    period: TimePeriod
    bands: Tuple[BidBand, ...] = ()
    battery_mode: Optional[BatteryMode] = None
    charge_mw: Optional[float] = None
    target_soc_mwh: Optional[float] = None

    @property
    def key(self) -> BidKey:
        return (self.team_id, self.asset_id, self.period)

    @property
    def total_offered_mw(self) -> float:
        return sum(band.offered_mw for band in self.bands)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "team_id": self.team_id,
            "asset_id": self.asset_id,
            "period": self.period.value,
            "bands": [band.to_dict() for band in self.bands],
        }
        if self.battery_mode is not None:
            data["battery_mode"] = self.battery_mode.value
        if self.charge_mw is not None:
            data["charge_mw"] = self.charge_mw
        if self.target_soc_mwh is not None:
            data["target_soc_mwh"] = self.target_soc_mwh
        return data


class BidBook:
    """Mutable collection of bids for one round.

    Writes are keyed by ``(team_id, asset_id, period)``; a later write for
    the same key replaces the earlier one. The book only accepts writes
    between :meth:`open` and :meth:`close`, after which it is frozen.
    """

    def __init__(
        self,
        round_number: int,
        assets: Iterable[Asset],
        conditions: RoundConditions,
        max_bands_per_asset: int = DEFAULT_MAX_BID_BANDS,
        price_cap: float = PRICE_CAP_MWH,
        price_floor: float = PRICE_FLOOR_MWH,
    ):
        self.round_number = round_number
        self.conditions = conditions
        self.max_bands_per_asset = max_bands_per_asset
        self.price_cap = price_cap
        self.price_floor = price_floor
        self._assets: Dict[str, Asset] = {}
        self._team_assets: Dict[str, List[str]] = {}
        for asset in assets:
            self._assets[asset.id] = asset
            self._team_assets.setdefault(asset.team_id, []).append(asset.id)
        self._bids: Dict[BidKey, AssetBid] = {}
        self._is_open = False
        self._frozen = False

    # ------------------------------------------------------------------
    # Open / close
    # ------------------------------------------------------------------
    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def open(self) -> None:
        if self._frozen:
            raise PhaseError(f"Bid book for round {self.round_number} is frozen")
        self._is_open = True

    def close(self) -> None:
        self._is_open = False
        self._frozen = True

    def register_team(self, team_id: str) -> None:
        """Make a team without assets known to the book."""
        self._team_assets.setdefault(team_id, [])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def upsert(
        self,
        team_id: str,
        asset_id: str,
        period: Union[TimePeriod, str],
        bands: Iterable[Any] = (),
        battery_mode: Union[BatteryMode, str, None] = None,
        charge_mw: Optional[float] = None,
        target_soc_mwh: Optional[float] = None,
    ) -> AssetBid:
        """Validate and store a submission, replacing any prior one for the same key."""
        self._require_open()
        bid = self.validate(team_id, asset_id, period, bands, battery_mode, charge_mw, target_soc_mwh)
        self._apply(bid)
        return bid

    def submit(self, team_id: str, entries: Iterable[Union[AssetBid, Mapping[str, Any]]]) -> List[AssetBid]:
        """Validate a batch of submissions and apply them only if all pass."""
        self._require_open()
        if isinstance(entries, (str, bytes, Mapping)) or not isinstance(entries, Iterable):
            raise ValidationError(f"Bids must be a list of submissions, got {type(entries).__name__}")
        validated = []
        for entry in entries:
            if not isinstance(entry, (AssetBid, Mapping)):
                raise ValidationError(f"Cannot interpret bid submission {entry!r}")
            if isinstance(entry, AssetBid):
                if entry.team_id != team_id:
                    raise ValidationError(f"Bid for team {entry.team_id} submitted by {team_id}")
                validated.append(self.validate(
                    team_id, entry.asset_id, entry.period, entry.bands,
                    entry.battery_mode, entry.charge_mw, entry.target_soc_mwh,
                ))
            else:
                if "asset_id" not in entry or "period" not in entry:
                    raise ValidationError("Each submission needs an asset_id and a period")
                validated.append(self.validate(
                    team_id,
                    entry["asset_id"],
                    entry["period"],
                    entry.get("bands", ()),
                    entry.get("battery_mode"),
                    entry.get("charge_mw"),
                    entry.get("target_soc_mwh"),
                ))
        for bid in validated:
            self._apply(bid)
        return validated

    def validate(
        self,
        team_id: str,
        asset_id: str,
        period: Union[TimePeriod, str],
        bands: Iterable[Any] = (),
        battery_mode: Union[BatteryMode, str, None] = None,
        charge_mw: Optional[float] = None,
        target_soc_mwh: Optional[float] = None,
    ) -> AssetBid:
        """Normalise a submission into an :class:`AssetBid` or raise ValidationError."""
        if team_id not in self._team_assets:
            raise NotFoundError(f"Unknown team: {team_id}")
        asset = self._assets.get(asset_id)
        if asset is None or asset.team_id != team_id:
            raise NotFoundError(f"Team {team_id} has no asset {asset_id}")
        try:
            period = TimePeriod.parse(period)
        except ValueError as exc:
            raise ValidationError(f"Unknown period: {period!r}") from exc

        if isinstance(bands, (str, bytes, Mapping)) or not isinstance(bands, Iterable):
            raise ValidationError(f"{asset_id}: bands must be a list of price/quantity pairs, got {bands!r}")
        parsed = tuple(BidBand.from_value(band) for band in bands)
        if len(parsed) > self.max_bands_per_asset:
            raise ValidationError(
                f"{asset_id}: at most {self.max_bands_per_asset} bands allowed, got {len(parsed)}"
            )
        for band in parsed:
            if not self.price_floor <= band.price_mwh <= self.price_cap:
                raise ValidationError(
                    f"{asset_id}: price {band.price_mwh} outside [{self.price_floor}, {self.price_cap}]"
                )
            if band.offered_mw < 0:
                raise ValidationError(f"{asset_id}: offered MW must be non-negative")

        limit = self.conditions.offer_limit_mw(asset, period)
        total = sum(band.offered_mw for band in parsed)
        if total > limit + MW_TOLERANCE:
            raise ValidationError(
                f"{asset_id}: offered {total:.2f} MW exceeds available {limit:.2f} MW in {period.value}"
            )

        if isinstance(asset.kind, BatteryKind):
            return self._validate_battery(team_id, asset, period, parsed, battery_mode, charge_mw, target_soc_mwh, limit)
        if battery_mode is not None or charge_mw is not None or target_soc_mwh is not None:
            raise ValidationError(f"{asset_id}: battery fields are only valid for batteries")
        return AssetBid(team_id, asset_id, period, parsed)

    def _validate_battery(
        self,
        team_id: str,
        asset: Asset,
        period: TimePeriod,
        bands: Tuple[BidBand, ...],
        battery_mode,
        charge_mw,
        target_soc_mwh,
        limit: float,
    ) -> AssetBid:
        offered = sum(band.offered_mw for band in bands)
        if battery_mode is None:
            if charge_mw is not None:
                mode = BatteryMode.CHARGE
            elif offered > 0 or target_soc_mwh is not None:
                mode = BatteryMode.DISCHARGE
            else:
                mode = BatteryMode.IDLE
        else:
            try:
                mode = battery_mode if isinstance(battery_mode, BatteryMode) else BatteryMode(str(battery_mode))
            except ValueError as exc:
                raise ValidationError(f"Unknown battery mode: {battery_mode!r}") from exc

        if charge_mw is not None:
            charge_mw = _finite(charge_mw, "charge_mw")
        if target_soc_mwh is not None:
            target_soc_mwh = _finite(target_soc_mwh, "target_soc_mwh")
            if not 0.0 <= target_soc_mwh <= asset.max_storage_mwh:
                raise ValidationError(
                    f"{asset.id}: target SOC {target_soc_mwh} outside [0, {asset.max_storage_mwh}]"
                )

        if mode is BatteryMode.CHARGE:
            if offered > 0:
                raise ValidationError(f"{asset.id}: a charging battery cannot offer discharge bands")
            if (charge_mw is None) == (target_soc_mwh is None):
                raise ValidationError(f"{asset.id}: charging needs exactly one of charge_mw or target_soc_mwh")
            if charge_mw is not None and not 0.0 <= charge_mw <= limit + MW_TOLERANCE:
                raise ValidationError(f"{asset.id}: charge {charge_mw} MW outside [0, {limit}]")
        elif mode is BatteryMode.DISCHARGE:
            if charge_mw is not None:
                raise ValidationError(f"{asset.id}: charge_mw is not valid while discharging")
            if target_soc_mwh is not None and len(bands) > 1:
                raise ValidationError(f"{asset.id}: a target-SOC discharge takes at most one price band")
        else:
            if offered > 0 or charge_mw is not None or target_soc_mwh is not None:
                raise ValidationError(f"{asset.id}: an idle battery cannot charge or offer")
        return AssetBid(team_id, asset.id, period, bands, mode, charge_mw, target_soc_mwh)

    def _apply(self, bid: AssetBid) -> None:
        asset = self._assets[bid.asset_id]
        if isinstance(asset.kind, HydroKind) and bid.total_offered_mw > 0:
            # Hydro runs in a single period per round
            for other in ROUND_PERIODS:
                if other is not bid.period:
                    self._bids[(bid.team_id, bid.asset_id, other)] = AssetBid(bid.team_id, bid.asset_id, other)
        self._bids[bid.key] = bid
        logger.debug("Bid stored for %s/%s %s: %.1f MW", bid.team_id, bid.asset_id, bid.period.value, bid.total_offered_mw)

    def _require_open(self) -> None:
        if not self._is_open:
            raise PhaseError(f"Bidding is not open for round {self.round_number}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, team_id: str, asset_id: str, period: Union[TimePeriod, str]) -> Optional[AssetBid]:
        return self._bids.get((team_id, asset_id, TimePeriod.parse(period)))

    def bids_for_period(self, period: TimePeriod) -> List[AssetBid]:
        bids = [bid for key, bid in self._bids.items() if key[2] is period]
        return sorted(bids, key=lambda bid: (bid.team_id, bid.asset_id))

    def bids_for_team(self, team_id: str) -> List[AssetBid]:
        bids = [bid for key, bid in self._bids.items() if key[0] == team_id]
        return sorted(bids, key=lambda bid: (bid.asset_id, ROUND_PERIODS.index(bid.period)))

    def offered_mw(self, team_id: str, asset_id: str, period: TimePeriod) -> float:
        bid = self._bids.get((team_id, asset_id, period))
        return bid.total_offered_mw if bid is not None else 0.0

    def required_slots(self, team_id: str) -> List[Tuple[str, TimePeriod]]:
        if team_id not in self._team_assets:
            raise NotFoundError(f"Unknown team: {team_id}")
        return [(asset_id, period) for asset_id in self._team_assets[team_id] for period in ROUND_PERIODS]

    def submitted_count(self, team_id: str) -> int:
        return sum(1 for asset_id, period in self.required_slots(team_id) if (team_id, asset_id, period) in self._bids)

    def is_complete(self, team_id: str) -> bool:
        """True iff every asset/period pair of the team has a submission."""
        return all((team_id, asset_id, period) in self._bids for asset_id, period in self.required_slots(team_id))

    def all_complete(self) -> bool:
        return all(self.is_complete(team_id) for team_id in self._team_assets)

    def status(self) -> Dict[str, Dict[str, Any]]:
        """Per-team submission progress."""
        return {
            team_id: {
                "submitted": self.submitted_count(team_id),
                "required": len(self.required_slots(team_id)),
                "complete": self.is_complete(team_id),
            }
            for team_id in sorted(self._team_assets)
        }

    def __len__(self) -> int:
        return len(self._bids)
