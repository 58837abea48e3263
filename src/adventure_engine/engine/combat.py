"""Turn-based combat: initiative, turn sequencing and attack resolution.

A combat moves through ``IDLE -> ACTIVE -> {VICTORY, DEFEAT, FLED}``.
While ACTIVE the engine runs enemy turns on its own and stops at the
player's slot, publishing ``combat-turn``. The next player action
(:meth:`CombatEngine.player_attack`, :meth:`CombatEngine.player_flee` or
:meth:`CombatEngine.pass_turn`) resumes the sequence.

End conditions are checked at the damage event that causes them, and
``combat-ended`` is published exactly once per combat. Handlers of that
event may start a new combat; every code path returns right after
finishing so the old combat never touches the new one.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum

from adventure_engine.core.constants import D20, FLEE_DC
from adventure_engine.core.exceptions import CombatError, UnknownEnemyError
from adventure_engine.core.logging import get_logger
from adventure_engine.engine.dice import DiceRoller
from adventure_engine.engine.events import (
    CombatEnded,
    CombatStarted,
    CombatTurn,
    EventBus,
    LogMessage,
    LogType,
    PlayerChanged,
)
from adventure_engine.models.entities import (
    EnemyDefinition,
    EnemyInstance,
    EnemyStatus,
    Player,
)


logger = get_logger(__name__)


class CombatPhase(StrEnum):
    """Lifecycle of a combat instance."""

    IDLE = "idle"
    ACTIVE = "active"
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"


class CombatantKind(StrEnum):
    PLAYER = "player"
    ENEMY = "enemy"


@dataclass
class InitiativeEntry:
    """A slot in the turn order.

    Attributes:
        kind: Player or enemy.
        name: Display name.
        roll: Natural d20 result.
        modifier: Dexterity modifier added to the roll.
        enemy: The enemy instance for enemy slots.
    """

    kind: CombatantKind
    name: str
    roll: int
    modifier: int
    enemy: EnemyInstance | None = None

    @property
    def initiative(self) -> int:
        return self.roll + self.modifier

    @property
    def is_defeated(self) -> bool:
        return self.enemy is not None and self.enemy.is_defeated


class CombatEngine:
    """Runs one combat at a time against a shared enemy definition table.

    Args:
        dice: Source of every roll and of enemy attack selection.
        event_bus: Receives combat, log and player events.
        enemy_definitions: Enemy templates keyed by id.
        flee_dc: Difficulty of a flee attempt.
    """

    def __init__(
        self,
        dice: DiceRoller,
        event_bus: EventBus,
        enemy_definitions: Mapping[str, EnemyDefinition] | None = None,
        *,
        flee_dc: int = FLEE_DC,
    ) -> None:
        self._dice = dice
        self._bus = event_bus
        self._definitions: dict[str, EnemyDefinition] = dict(enemy_definitions or {})
        self._flee_dc = flee_dc

        self._phase = CombatPhase.IDLE
        self._player: Player | None = None
        self._enemies: list[EnemyInstance] = []
        self._order: list[InitiativeEntry] = []
        self._turn_index = 0
        self._round = 0
        self._awaiting_player = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def load_enemies(self, definitions: Mapping[str, EnemyDefinition]) -> None:
        self._definitions = dict(definitions)

    @property
    def phase(self) -> CombatPhase:
        return self._phase

    @property
    def is_active(self) -> bool:
        return self._phase is CombatPhase.ACTIVE

    @property
    def awaiting_player(self) -> bool:
        """True while combat is suspended on the player's turn."""
        return self.is_active and self._awaiting_player

    @property
    def enemies(self) -> tuple[EnemyInstance, ...]:
        return tuple(self._enemies)

    @property
    def living_enemies(self) -> list[EnemyInstance]:
        return [enemy for enemy in self._enemies if not enemy.is_defeated]

    @property
    def turn_order(self) -> tuple[InitiativeEntry, ...]:
        return tuple(self._order)

    @property
    def round(self) -> int:
        return self._round

    @property
    def total_xp(self) -> int:
        return sum(enemy.xp for enemy in self._enemies)

    def enemy_statuses(self, *, living_only: bool = False) -> list[EnemyStatus]:
        enemies = self.living_enemies if living_only else self._enemies
        return [enemy.status() for enemy in enemies]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, player: Player, enemy_ids: Sequence[str]) -> None:
        """Start a combat and run turns until the player is up or it ends.

        Args:
            player: The player; damaged in place by enemy attacks.
            enemy_ids: Enemy definition ids, in encounter order.

        Raises:
            CombatError: If a combat is already active or no enemies are given.
            UnknownEnemyError: If an id is not in the definition table.
        """
        if self.is_active:
            raise CombatError("A combat is already in progress", round_number=self._round)
        if not enemy_ids:
            raise CombatError("Cannot start combat without enemies")
        for enemy_id in enemy_ids:
            if enemy_id not in self._definitions:
                raise UnknownEnemyError(f"Unknown enemy: {enemy_id}", entity_id=enemy_id)

        self._player = player
        self._enemies = [
            self._definitions[enemy_id].instantiate(index)
            for index, enemy_id in enumerate(enemy_ids)
        ]
        self._order = self._roll_initiative(player, self._enemies)
        self._turn_index = 0
        self._round = 1
        self._awaiting_player = False
        self._phase = CombatPhase.ACTIVE

        logger.info(
            "Combat started",
            enemies=[enemy.instance_id for enemy in self._enemies],
            order=[entry.name for entry in self._order],
        )
        self._bus.publish(
            CombatStarted(
                enemies=self.enemy_statuses(),
                turn_order=[entry.name for entry in self._order],
            )
        )
        self._log("Combat begins!")
        for entry in self._order:
            self._log(f"Initiative: {entry.name} -> {entry.initiative}")

        self._run_turns()

    def _roll_initiative(
        self, player: Player, enemies: list[EnemyInstance]
    ) -> list[InitiativeEntry]:
        entries = [
            InitiativeEntry(
                kind=CombatantKind.PLAYER,
                name=player.name,
                roll=self._dice.roll_die(D20),
                modifier=player.stats.modifier("dexterity"),
            )
        ]
        for enemy in enemies:
            entries.append(
                InitiativeEntry(
                    kind=CombatantKind.ENEMY,
                    name=enemy.name,
                    roll=self._dice.roll_die(D20),
                    modifier=enemy.definition.stats.modifier("dexterity"),
                    enemy=enemy,
                )
            )
        # sorted() is stable, so ties keep player-first, then listed order
        return sorted(entries, key=lambda entry: entry.initiative, reverse=True)

    def _finish(self, phase: CombatPhase) -> None:
        if not self.is_active:
            return
        self._phase = phase
        self._awaiting_player = False

        if phase is CombatPhase.VICTORY:
            total_xp = self.total_xp
            self._log(f"Victory! Gained {total_xp} XP")
            event = CombatEnded(victory=True, total_xp=total_xp)
        elif phase is CombatPhase.DEFEAT:
            self._log("You have been defeated...")
            event = CombatEnded(victory=False, total_xp=0)
        else:
            event = CombatEnded(victory=False, fled=True)

        logger.info("Combat ended", phase=phase.value, round=self._round, total_xp=event.total_xp)
        self._bus.publish(event)

    # -------------------------------------------------------------------------
    # Turn sequencing
    # -------------------------------------------------------------------------

    def _next_living_entry(self) -> InitiativeEntry | None:
        """Find the next slot from the turn pointer, wrapping into a new round."""
        for _ in range(len(self._order) + 1):
            if self._turn_index >= len(self._order):
                self._turn_index = 0
                self._round += 1
                logger.debug("New combat round", round=self._round)
            entry = self._order[self._turn_index]
            if not entry.is_defeated:
                return entry
            self._turn_index += 1
        return None

    def _run_turns(self) -> None:
        while self.is_active:
            entry = self._next_living_entry()
            if entry is None:
                raise CombatError("Turn order has no living combatant", round_number=self._round)

            if entry.kind is CombatantKind.PLAYER:
                self._awaiting_player = True
                self._bus.publish(
                    CombatTurn(
                        enemies=self.enemy_statuses(living_only=True),
                        player=self._require_player().status(),
                        round=self._round,
                    )
                )
                return

            if entry.enemy is not None and self._enemy_action(entry.enemy):
                return
            self._turn_index += 1

    def _end_player_turn(self) -> None:
        self._awaiting_player = False
        self._turn_index += 1
        self._run_turns()

    def _enemy_action(self, enemy: EnemyInstance) -> bool:
        """Resolve one enemy turn. Returns True if it ended the combat."""
        player = self._require_player()
        attacks = enemy.definition.attacks
        if not attacks:
            self._log(f"{enemy.name} hesitates")
            return False

        attack = self._dice.choose(attacks)
        attack_roll = self._dice.roll_die(D20) + attack.to_hit
        if attack_roll < player.ac:
            self._log(f"{enemy.name} uses {attack.name}: {attack_roll} vs AC {player.ac} -> miss")
            return False

        damage = self._dice.roll(attack.damage).total
        player.apply_damage(damage)
        self._log(
            f"{enemy.name} uses {attack.name}: {attack_roll} vs AC {player.ac} "
            f"-> hit for {damage} damage"
        )
        self._bus.publish(PlayerChanged(player=player.status()))

        if player.is_defeated:
            self._finish(CombatPhase.DEFEAT)
            return True
        return False

    # -------------------------------------------------------------------------
    # Player actions
    # -------------------------------------------------------------------------

    def player_attack(self, attack_index: int = 0, target_index: int = 0) -> bool:
        """Attack a living enemy.

        Args:
            attack_index: Index into the player's attacks.
            target_index: Index into the currently living enemies.

        Returns:
            False if the action was ignored (not the player's turn, or an
            invalid index).
        """
        if not self.awaiting_player:
            return False
        player = self._require_player()
        if not 0 <= attack_index < len(player.attacks):
            return False
        living = self.living_enemies
        if not 0 <= target_index < len(living):
            return False

        attack = player.attacks[attack_index]
        target = living[target_index]
        modifier = player.stats.modifier(attack.stat) if attack.stat else 0
        attack_roll = self._dice.roll_die(D20) + modifier

        if attack_roll >= target.ac:
            damage = self._dice.roll(attack.damage).total
            target.take_damage(damage)
            self._log(
                f"{player.name} uses {attack.name}: {attack_roll} vs AC {target.ac} "
                f"-> hit for {damage} damage"
            )
            if target.is_defeated:
                self._log(f"{target.name} is defeated!")
            if not self.living_enemies:
                self._finish(CombatPhase.VICTORY)
                return True
        else:
            self._log(f"{player.name} uses {attack.name}: {attack_roll} vs AC {target.ac} -> miss")

        self._end_player_turn()
        return True

    def player_flee(self) -> bool:
        """Try to escape with ``1d20 + DEX`` against the flee DC.

        A failed attempt still spends the turn.

        Returns:
            False if the action was ignored.
        """
        if not self.awaiting_player:
            return False
        player = self._require_player()
        roll = self._dice.roll_die(D20) + player.stats.modifier("dexterity")

        if roll >= self._flee_dc:
            self._log(f"Escaped! ({roll} vs DC {self._flee_dc})")
            self._finish(CombatPhase.FLED)
            return True

        self._log(f"Failed to escape! ({roll} vs DC {self._flee_dc})")
        self._end_player_turn()
        return True

    def check_defeat(self) -> bool:
        """End the combat as a defeat if the player dropped to 0 HP outside an enemy turn.

        Returns:
            True if this call ended the combat.
        """
        if not self.is_active or not self._require_player().is_defeated:
            return False
        self._finish(CombatPhase.DEFEAT)
        return True

    def pass_turn(self) -> bool:
        """Spend the player's turn without attacking, e.g. after using an item."""
        if not self.awaiting_player:
            return False
        self._end_player_turn()
        return True

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_player(self) -> Player:
        if self._player is None:
            raise CombatError("Combat has no player")
        return self._player

    def _log(self, text: str) -> None:
        self._bus.publish(LogMessage(type=LogType.COMBAT, text=text))


__all__ = [
    "CombatPhase",
    "CombatantKind",
    "InitiativeEntry",
    "CombatEngine",
]
