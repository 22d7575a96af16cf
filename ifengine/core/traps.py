"""Trap subsystem: seeding, detection, disarming and triggering of room hazards.

Lifecycle of a trap inside one session:

    seeded/loaded -> (detected) -> disarmed | triggered

``triggered`` is a one-way switch: once a trap has fired (or has been
disarmed, which also spends it) it never produces another effect until a
debug ``reset_trap``. Detection always comes before a disarm attempt, and
a disarm attempt (manual or passive) always comes before the trigger
effect is computed.

The subsystem never touches the world snapshot. Effects come back as
``TrapOutcome`` objects carrying messages and a state patch.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import ActionError, InvariantViolation
from .model.base import TrapEffect, TRAP_TYPES, TRAP_SEVERITIES, EFFECT_KINDS
from .rng import RandomSource, weighted_choice, roll_range
from .state import Message, PlayerState

logger = logging.getLogger(__name__)

SEVERITY_LEVELS = {"light": "low", "moderate": "medium", "severe": "high", "lethal": "extreme"}
SEVERITY_DAMAGE = {"light": (5, 10), "moderate": (10, 20), "severe": (15, 30), "lethal": (25, 50)}
SEVERITY_FUSE_SECONDS = {"light": 5.0, "moderate": 15.0, "severe": 30.0, "lethal": 60.0}
SEVERITY_DETECTION_BONUS = {"severe": 0.2, "lethal": 0.3}

DEFAULT_SEVERITY_WEIGHTS = {"light": 0.5, "moderate": 0.3, "severe": 0.15, "lethal": 0.05}
DEFAULT_TYPE_WEIGHTS = {"environmental": 0.4, "mechanical": 0.3, "magical": 0.2}
DEFAULT_EXCLUDED_ROOMS = ("intro", "safe_zone", "shop", "inn")
DEFAULT_TRAP_DAMAGE = 10

# (names, bonus, method); first match wins inside each table
DETECTION_TRAITS = (
    (("trap_expert", "master_thief"), 0.8, "expertise"),
    (("perceptive", "alert"), 0.6, "perception"),
    (("cautious",), 0.4, "caution"),
)
DETECTION_ITEMS = (
    (("trap_detector", "scanner"), 0.7, "technology"),
    (("thieves_tools", "lockpicks"), 0.5, "tools"),
    (("magnifying_glass",), 0.3, "investigation"),
)
MIN_DETECTION_CHANCE = 0.1
ACTIVE_SEARCH_BONUS = 0.4

DISARM_BASE_CHANCE = 0.3
DISARM_MAX_CHANCE = 0.95
DISARM_TRAITS = (
    (("trap_expert",), 0.9, "expertise"),
    (("master_thief",), 0.8, "thief_skills"),
    (("technical",), 0.6, "technical_knowledge"),
)
DISARM_ITEMS = (
    (("trap_kit", "trapkit"), 0.8, "professional_tools"),
    (("thieves_tools",), 0.7, "thieves_tools"),
    (("wire_cutters",), 0.5, "wire_cutting"),
)
FAILED_DISARM_DAMAGE_CAP = 15

ESCAPE_BASE_CHANCE = 0.6
ESCAPE_MIN_CHANCE = 0.1
ESCAPE_MAX_CHANCE = 0.9
LUCK_SAVE_CHANCE = 0.3

_DESCRIPTIONS = {
    "light": {
        "mechanical": ["A tiny dart shoots from the wall!", "A small spring mechanism snaps at your ankle!"],
        "magical": ["Faint runes flare briefly under your feet!", "A weak ward sparks against your skin!"],
        "environmental": ["A loose floorboard gives way under your foot!", "A shower of pebbles rattles down from above!"],
    },
    "moderate": {
        "mechanical": ["Bolts fire from hidden slots in the wall!", "Gears grind and a blade sweeps low!"],
        "magical": ["Arcane symbols blaze and the air crackles!", "A pulse of raw magic slams into you!"],
        "environmental": ["Spikes jut up from the floor!", "A hiss of acrid gas fills the air!"],
    },
    "severe": {
        "mechanical": ["Heavy blades swing down from the ceiling!", "Crushing pistons slam out of the walls!"],
        "magical": ["Sigils tear open and reality buckles around you!", "A curse lashes out from the stones!"],
        "environmental": ["The floor collapses beneath you!", "Scalding steam bursts from the cracks!"],
    },
    "lethal": {
        "mechanical": ["The whole chamber becomes a grinding machine!", "A hail of razors fills the corridor!"],
        "magical": ["An ancient malediction awakens with fury!", "Space itself folds shut around you!"],
        "environmental": ["The ground opens onto a bottomless drop!", "A torrent of molten slag pours in!"],
    },
}

_WARNINGS = {
    "visual": "You notice a trap here: {description}",
    "expertise": "Your trained eye spots a {severity} {type} trap before you blunder into it.",
    "perception": "Something about this place feels wrong. You spot the signs of a trap.",
    "caution": "Moving carefully, you notice a suspicious mechanism.",
    "technology": "Your detector chirps: there is a hidden trap nearby!",
    "tools": "Your tools snag on a hidden tripwire.",
    "investigation": "Under close inspection you find traces of a concealed trap.",
    "instinct": "A sudden chill warns you of a hidden trap.",
}


@dataclass
class Trap:
    id: str
    room_id: str
    type: str
    severity: str
    description: str = ""
    disarmable: bool = True
    hidden: bool = True
    auto_disarm: bool = False
    damage: int = DEFAULT_TRAP_DAMAGE
    fuse: float = 15.0
    effect: TrapEffect = field(default_factory=TrapEffect)
    triggered: bool = False
    detected: bool = False
    disarmed: bool = False

    @property
    def active(self) -> bool:
        return not self.triggered

    @property
    def danger_level(self) -> str:
        return SEVERITY_LEVELS[self.severity]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["effect"] = asdict(self.effect)
        return data


def build_trap(data: Mapping[str, Any]) -> Trap:
    """Build a Trap from a content/snapshot dict.

    Raises:
        InvariantViolation: missing id/room, unknown type, severity or effect kind
    """
    for key in ("id", "room_id"):
        if not data.get(key):
            raise InvariantViolation(f"Trap {data.get('id')!r} has no {key}")
    severity = data.get("severity")
    trap_type = data.get("type")
    if severity not in TRAP_SEVERITIES:
        raise InvariantViolation(f"Trap '{data.get('id')}' has unknown severity {severity!r}")
    if trap_type not in TRAP_TYPES:
        raise InvariantViolation(f"Trap '{data.get('id')}' has unknown type {trap_type!r}")
    raw_effect = dict(data.get("effect") or {})
    kind = raw_effect.get("kind", "damage")
    if kind not in EFFECT_KINDS:
        raise InvariantViolation(f"Trap '{data.get('id')}' has unknown effect kind {kind!r}")
    effect = TrapEffect(
        kind=kind,
        teleport_to=raw_effect.get("teleport_to"),
        items_lost=list(raw_effect.get("items_lost", [])),
    )
    return Trap(
        id=data["id"],
        room_id=data["room_id"],
        type=trap_type,
        severity=severity,
        description=data.get("description") or _DESCRIPTIONS[severity][trap_type][0],
        disarmable=data.get("disarmable", True),
        hidden=data.get("hidden", True),
        auto_disarm=data.get("auto_disarm", False),
        damage=int(data.get("damage", DEFAULT_TRAP_DAMAGE)),
        fuse=float(data.get("fuse", SEVERITY_FUSE_SECONDS[severity])),
        effect=effect,
        triggered=data.get("triggered", False),
        detected=data.get("detected", False),
        disarmed=data.get("disarmed", False),
    )


def build_trap_table(data: Iterable[Mapping[str, Any]]) -> Dict[str, Trap]:
    """Room id -> Trap for a list of trap dicts; nothing is kept if one is bad."""
    traps: Dict[str, Trap] = {}
    for raw in data:
        trap = build_trap(raw)
        traps[trap.room_id] = trap
    return traps


@dataclass(frozen=True)
class TrapSeedConfig:
    probability: float = 0.3
    density: float = 1.0
    max_traps: int = 5
    exclude_rooms: Tuple[str, ...] = DEFAULT_EXCLUDED_ROOMS
    preferred_rooms: Tuple[str, ...] = ()
    severity_weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_SEVERITY_WEIGHTS))
    type_weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_TYPE_WEIGHTS))
    auto_disarm_chance: float = 0.3


@dataclass(frozen=True)
class TrapDetection:
    detected: bool
    warning: str = ""
    can_disarm: bool = False
    severity: Optional[str] = None  # low | medium | high | extreme
    method: str = "none"
    chance: float = 0.0


@dataclass(frozen=True)
class DisarmAssessment:
    can_disarm: bool
    method: str = "none"
    chance: float = 0.0


@dataclass
class TrapOutcome:
    trap_id: Optional[str]
    messages: List[Message] = field(default_factory=list)
    updates: Dict[str, Any] = field(default_factory=dict)
    events: List[str] = field(default_factory=list)
    damage: int = 0
    triggered: bool = False
    disarmed: bool = False
    escaped: bool = False


@dataclass
class TrapStats:
    total_seeded: int = 0
    total_triggered: int = 0
    total_disarmed: int = 0
    damage_dealt: int = 0
    debug_mode_uses: int = 0


def _first_match(owned: Iterable[str], table) -> Optional[Tuple[float, str]]:
    owned = set(owned)
    for names, value, method in table:
        if owned.intersection(names):
            return value, method
    return None


class TrapSubsystem:
    """Session-scoped trap registry (one trap per room at most)."""

    def __init__(
        self,
        rng: RandomSource,
        item_name: Optional[Callable[[str], str]] = None,
        debug_mode: bool = False,
    ):
        self._rng = rng
        self._item_name = item_name or (lambda item_id: item_id.replace("_", " "))
        self._traps: Dict[str, Trap] = {}
        self.stats = TrapStats()
        self.debug_mode = debug_mode

    # --- registry ---

    def register(self, trap: Trap) -> Trap:
        if trap.severity not in TRAP_SEVERITIES or trap.type not in TRAP_TYPES:
            raise InvariantViolation(f"Trap '{trap.id}' has unknown severity/type")
        existing = self._traps.get(trap.room_id)
        if existing is not None:
            logger.warning("Room '%s' already holds trap '%s'; ignoring '%s'", trap.room_id, existing.id, trap.id)
            return existing
        self._traps[trap.room_id] = trap
        return trap

    def load_definitions(self, definitions: Iterable[Mapping[str, Any]]) -> List[str]:
        """Register authored traps; defective definitions are logged and skipped."""
        issues: List[str] = []
        for raw in definitions:
            try:
                self.register(build_trap(raw))
            except InvariantViolation as exc:
                logger.error("Skipping trap definition: %s", exc)
                issues.append(str(exc))
        return issues

    def trap_for_room(self, room_id: str) -> Optional[Trap]:
        return self._traps.get(room_id)

    def active_trap(self, room_id: str) -> Optional[Trap]:
        trap = self._traps.get(room_id)
        if trap is None or trap.triggered:
            return None
        return trap

    # --- seeding ---

    def seed(self, room_ids: Iterable[str], config: Optional[TrapSeedConfig] = None) -> List[Trap]:
        """Seed random traps across eligible rooms.

        Args:
            room_ids: candidate rooms
            config: seeding parameters (defaults to TrapSeedConfig())

        Returns:
            The newly created traps.
        """
        config = config or TrapSeedConfig()
        room_ids = list(dict.fromkeys(room_ids))
        if not room_ids:
            logger.warning("No room ids provided for trap seeding")
            return []
        excluded = set(config.exclude_rooms)
        eligible = [r for r in room_ids if r not in excluded and r not in self._traps]
        if not eligible:
            logger.warning("No rooms left for trap seeding after exclusions")
            return []
        preferred_set = set(config.preferred_rooms)
        preferred = [r for r in eligible if r in preferred_set]
        others = [r for r in eligible if r not in preferred_set]
        self._rng.shuffle(preferred)
        self._rng.shuffle(others)
        budget = min(config.max_traps, int(round(len(eligible) * config.density)))
        seeded: List[Trap] = []
        for room_id in (preferred + others)[:budget]:
            if self._rng.random() < config.probability:
                trap = self._generate(room_id, config, self.stats.total_seeded + len(seeded) + 1)
                self._traps[room_id] = trap
                seeded.append(trap)
        self.stats.total_seeded += len(seeded)
        logger.info("Seeded %d trap(s): %s", len(seeded), ", ".join(t.room_id for t in seeded) or "-")
        return seeded

    def _generate(self, room_id: str, config: TrapSeedConfig, serial: int) -> Trap:
        severity = weighted_choice(self._rng, config.severity_weights)
        trap_type = weighted_choice(self._rng, config.type_weights)
        if severity not in TRAP_SEVERITIES or trap_type not in TRAP_TYPES:
            raise InvariantViolation(f"Seeding produced unknown trap {severity!r}/{trap_type!r}")
        return Trap(
            id=f"trap_{room_id}_{serial}",
            room_id=room_id,
            type=trap_type,
            severity=severity,
            description=self._rng.choice(_DESCRIPTIONS[severity][trap_type]),
            damage=roll_range(self._rng, SEVERITY_DAMAGE[severity]),
            fuse=SEVERITY_FUSE_SECONDS[severity],
            auto_disarm=severity == "light" and self._rng.random() < config.auto_disarm_chance,
            hidden=True,
        )

    # --- detection ---

    def detect(self, room_id: str, traits: Iterable[str], items: Iterable[str],
               search_bonus: float = 0.0) -> TrapDetection:
        """Roll detection for the active trap in ``room_id``.

        Visible traps are always detected. Hidden ones add up trait and item
        bonuses, are floored at MIN_DETECTION_CHANCE and then boosted by
        severity before a single draw.
        """
        trap = self.active_trap(getattr(room_id, "id", room_id))
        if trap is None:
            return TrapDetection(detected=False)
        if not trap.hidden:
            trap.detected = True
            return TrapDetection(
                detected=True,
                warning=self._warning(trap, "visual"),
                can_disarm=trap.disarmable,
                severity=trap.danger_level,
                method="visual",
                chance=1.0,
            )
        chance = 0.0
        method = "none"
        trait_match = _first_match(traits, DETECTION_TRAITS)
        if trait_match:
            chance += trait_match[0]
            method = trait_match[1]
        item_match = _first_match(items, DETECTION_ITEMS)
        if item_match:
            chance += item_match[0]
            if method == "none":
                method = item_match[1]
        chance += search_bonus
        chance = max(chance, MIN_DETECTION_CHANCE)
        chance = min(1.0, chance + SEVERITY_DETECTION_BONUS.get(trap.severity, 0.0))
        detected = self._rng.random() < chance
        if not detected:
            return TrapDetection(detected=False, severity=trap.danger_level, method=method, chance=chance)
        trap.detected = True
        if method == "none":
            method = "instinct"
        return TrapDetection(
            detected=True,
            warning=self._warning(trap, method),
            can_disarm=trap.disarmable,
            severity=trap.danger_level,
            method=method,
            chance=chance,
        )

    def search(self, room_id: str, traits: Iterable[str], items: Iterable[str]) -> TrapDetection:
        """Active search: a detection roll with a flat bonus."""
        trap = self.active_trap(room_id)
        if trap is not None and trap.detected:
            return TrapDetection(
                detected=True,
                warning=self._warning(trap, "visual"),
                can_disarm=trap.disarmable,
                severity=trap.danger_level,
                method="visual",
                chance=1.0,
            )
        return self.detect(room_id, traits, items, search_bonus=ACTIVE_SEARCH_BONUS)

    def _warning(self, trap: Trap, method: str) -> str:
        template = _WARNINGS.get(method, _WARNINGS["instinct"])
        text = template.format(description=trap.description, severity=trap.severity, type=trap.type)
        return f"{text} (danger: {trap.danger_level})"

    # --- disarming ---

    def can_disarm(self, trap: Trap, traits: Iterable[str], items: Iterable[str]) -> DisarmAssessment:
        """Best disarm chance the player can bring to bear (no randomness)."""
        if not trap.disarmable:
            return DisarmAssessment(can_disarm=False, method="none", chance=0.0)
        chance, method = DISARM_BASE_CHANCE, "basic"
        for match in (_first_match(traits, DISARM_TRAITS), _first_match(items, DISARM_ITEMS)):
            if match and match[0] > chance:
                chance, method = match
        return DisarmAssessment(can_disarm=True, method=method, chance=min(chance, DISARM_MAX_CHANCE))

    def attempt_disarm(self, trap: Optional[Trap], player: PlayerState) -> TrapOutcome:
        """Manual disarm attempt on a detected, armed trap.

        Raises:
            ActionError: nothing detected to disarm, or the trap cannot be disarmed
        """
        if trap is None or trap.triggered or not trap.detected:
            raise ActionError("There are no active traps here to disarm.")
        assessment = self.can_disarm(trap, player.traits, player.inventory)
        if not assessment.can_disarm:
            raise ActionError("This trap cannot be disarmed, or you lack the necessary skills/tools.")
        if self._rng.random() < assessment.chance:
            outcome = self._mark_disarmed(trap, f"You carefully disarm the {trap.severity} {trap.type} trap.")
            outcome.events.append("trap.disarmed")
            return outcome
        if trap.auto_disarm:
            # Self-disarming traps never hurt, even when fumbled
            outcome = self._mark_disarmed(trap, f"The {trap.severity} trap clicks and harmlessly disarms itself.")
        else:
            outcome = self.trigger(trap, player, damage_cap=FAILED_DISARM_DAMAGE_CAP)
        outcome.messages.insert(0, Message("Your attempt to disarm the trap fails!", "error"))
        return outcome

    def _mark_disarmed(self, trap: Trap, text: str) -> TrapOutcome:
        trap.triggered = True
        trap.disarmed = True
        self.stats.total_disarmed += 1
        logger.debug("Trap %s disarmed", trap.id)
        return TrapOutcome(trap_id=trap.id, messages=[Message(text, "success")], disarmed=True)

    def _passive_defence(self, trap: Trap, player: PlayerState) -> Optional[Tuple[str, str]]:
        traits = player.traits
        items = set(player.inventory)
        if trap.auto_disarm:
            return "auto", f"The {trap.severity} trap clicks and harmlessly disarms itself."
        if traits & {"trap_expert", "master_thief"}:
            return "expertise", f"Your expertise lets you disarm the {trap.severity} trap before it can harm you."
        if traits & {"resistant", "trap_resistant"}:
            return "resistance", f"Your natural resistance shrugs off the {trap.type} trap."
        if "lucky" in traits and self._rng.random() < LUCK_SAVE_CHANCE:
            return "luck", "Luck is on your side: you avoid the trap at the last second!"
        if items & {"trap_kit", "trapkit"}:
            return "trapkit", f"You deploy your trap kit and neutralize the {trap.type} trap."
        if items & {"thieves_tools", "lockpicks"}:
            return "tools", "Your tools let you jam the mechanism just in time."
        if trap.type == "magical" and traits & {"mage", "wizard"}:
            return "magic", "Your arcane knowledge dispels the trap's enchantment."
        return None

    # --- triggering ---

    def spring(self, trap: Optional[Trap], player: PlayerState) -> TrapOutcome:
        """Passive disarm attempt followed, if it fails, by the trigger effect."""
        if trap is None or trap.triggered:
            return TrapOutcome(trap_id=trap.id if trap else None)
        if not self.debug_mode:
            defence = self._passive_defence(trap, player)
            if defence is not None:
                method, text = defence
                outcome = self._mark_disarmed(trap, text)
                if method != "auto":
                    outcome.events.append("trap.disarmed")
                return outcome
        return self.trigger(trap, player)

    def effective_damage(self, trap: Trap, player: PlayerState, cap: Optional[int] = None) -> int:
        damage = float(trap.damage)
        if player.difficulty == "easy":
            damage = math.ceil(damage * 0.5)
        elif player.difficulty == "hard":
            damage = math.ceil(damage * 1.5)
        if player.traits & {"resistant", "trap_resistant"}:
            damage = math.ceil(damage * 0.7)
        if "fragile" in player.traits:
            damage = math.ceil(damage * 1.3)
        damage = int(damage)
        if cap is not None:
            damage = min(damage, cap)
        return max(0, damage)

    def trigger(self, trap: Optional[Trap], player: PlayerState, damage_cap: Optional[int] = None) -> TrapOutcome:
        """Fire the trap. A trap that already fired yields an empty outcome."""
        if trap is None or trap.triggered:
            return TrapOutcome(trap_id=trap.id if trap else None)
        trap.triggered = True
        self.stats.total_triggered += 1
        outcome = TrapOutcome(trap_id=trap.id, triggered=True, events=["trap.triggered"])
        if self.debug_mode:
            self.stats.debug_mode_uses += 1
            outcome.events = []
            outcome.messages.append(
                Message(f"Trap in {trap.room_id} triggered but harmless in debug mode.", "system")
            )
            return outcome

        outcome.messages.append(Message(f"TRAP TRIGGERED: {trap.description}", "error"))
        effect = trap.effect
        if effect.kind == "teleport" and effect.teleport_to:
            outcome.messages.append(Message("The trap teleports you to another location!", "system"))
            outcome.updates["current_room_id"] = effect.teleport_to
        elif effect.kind == "item_loss":
            lost = [i for i in player.inventory if i in effect.items_lost]
            if lost:
                remaining = [i for i in player.inventory if i not in effect.items_lost]
                outcome.updates["player"] = {"inventory": remaining}
                names = ", ".join(self._item_name(i) for i in lost)
                outcome.messages.append(Message(f"You lose: {names}", "error"))
            else:
                outcome.messages.append(Message("Something tugs at your pack, but nothing is taken.", "warning"))
        else:
            damage = self.effective_damage(trap, player, damage_cap)
            health = max(0, player.health - damage)
            penalty = damage // 2
            outcome.damage = damage
            outcome.updates["player"] = {"health": health, "score": player.score - penalty}
            self.stats.damage_dealt += damage
            outcome.messages.append(Message(f"You take {damage} damage.", "error"))
            if health == 0:
                outcome.messages.append(Message("Your vision fades to black...", "error"))
        logger.debug("Trap %s triggered in %s", trap.id, trap.room_id)
        return outcome

    # --- escape ---

    def escape_chance(self, traits: Iterable[str]) -> float:
        traits = set(traits)
        chance = ESCAPE_BASE_CHANCE
        if traits & {"agile", "quick"}:
            chance += 0.2
        if "clumsy" in traits:
            chance -= 0.2
        return max(ESCAPE_MIN_CHANCE, min(ESCAPE_MAX_CHANCE, chance))

    def attempt_escape(self, trap: Optional[Trap], player: PlayerState) -> TrapOutcome:
        """Leave a room holding a detected, armed trap; failure springs it."""
        if trap is None or trap.triggered:
            return TrapOutcome(trap_id=trap.id if trap else None, escaped=True)
        if self._rng.random() < self.escape_chance(player.traits):
            return TrapOutcome(
                trap_id=trap.id,
                escaped=True,
                messages=[Message("You slip past the trap before it can spring.", "success")],
            )
        outcome = self.spring(trap, player)
        outcome.messages.insert(0, Message("The trap springs as you try to leave!", "warning"))
        return outcome

    # --- inspection & debug ---

    def list_active_traps(self, include_triggered: bool = False) -> List[Trap]:
        return [t for t in self._traps.values() if include_triggered or not t.triggered]

    def trap_count(self, active: Optional[bool] = None, severity: Optional[str] = None,
                   type: Optional[str] = None) -> int:
        count = 0
        for trap in self._traps.values():
            if active is not None and trap.active != active:
                continue
            if severity is not None and trap.severity != severity:
                continue
            if type is not None and trap.type != type:
                continue
            count += 1
        return count

    def statistics(self) -> Dict[str, Any]:
        data = asdict(self.stats)
        data["active"] = self.trap_count(active=True)
        data["total"] = len(self._traps)
        data["by_severity"] = {s: self.trap_count(severity=s) for s in TRAP_SEVERITIES}
        return data

    def reset_trap(self, room_id: str) -> bool:
        trap = self._traps.get(room_id)
        if trap is None:
            return False
        trap.triggered = False
        trap.detected = False
        trap.disarmed = False
        logger.info("Trap %s reset", trap.id)
        return True

    def clear_all(self, confirm: bool = False) -> bool:
        if not confirm:
            logger.warning("clear_all called without confirmation; traps kept")
            return False
        self._traps.clear()
        return True

    def enable_debug(self) -> None:
        self.debug_mode = True

    def disable_debug(self) -> None:
        self.debug_mode = False

    def toggle_debug(self) -> bool:
        self.debug_mode = not self.debug_mode
        return self.debug_mode

    # --- persistence ---

    def to_snapshot(self) -> List[Dict[str, Any]]:
        return [t.to_dict() for t in self._traps.values()]

    def from_snapshot(self, data: Iterable[Mapping[str, Any]]) -> None:
        self.replace_all(build_trap_table(data))

    def replace_all(self, traps: Mapping[str, Trap]) -> None:
        self._traps = dict(traps)
