"""
Combat session - real-time arithmetic card battle.

The player solves cards from a five-card hand while enemies attack on
their own recovery timers. Correct answers deal damage (with combo,
chain and ultimate bonuses); wrong answers and discards cost HP.

State flow:

    IDLE -> CARD_SELECTION <-> ANSWER_ENTRY -> RESOLVING -> CARD_SELECTION
                                                   |
                                  VICTORY -> LEVEL_UP -> ENDED
                                  DEFEAT  -------------> ENDED

Pausing is orthogonal to the phase. Both session clocks (display and
enemy recovery) run on one TickScheduler and stop together on pause,
level-up and end.
"""

from __future__ import annotations

import logging
import random
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Optional

from tower.battle.cards import Card, CardDealer
from tower.battle.damage import AttackerStats, DamageResolver, StandardDamageResolver
from tower.battle.enemy import Enemy
from tower.config import GameSettings
from tower.progression.leveling import ProgressionSystem
from tower_engine.core.clock import TickScheduler, TimerHandle
from tower_engine.core.events import EventBus

if TYPE_CHECKING:
    from tower.run.context import RunContext

logger = logging.getLogger(__name__)

WIN = "win"
LOSE = "lose"


class BattlePhase(Enum):
    """Phase of a combat session."""
    IDLE = auto()
    CARD_SELECTION = auto()
    ANSWER_ENTRY = auto()
    RESOLVING = auto()
    VICTORY = auto()
    DEFEAT = auto()
    LEVEL_UP = auto()
    ENDED = auto()


INPUT_PHASES = (BattlePhase.CARD_SELECTION, BattlePhase.ANSWER_ENTRY)
CLOSED_PHASES = (
    BattlePhase.VICTORY,
    BattlePhase.DEFEAT,
    BattlePhase.LEVEL_UP,
    BattlePhase.ENDED,
)


class BattleEvent(Enum):
    """Events published by a CombatSession."""
    STARTED = auto()          # enemies, hand
    CARD_SELECTED = auto()    # index, card
    CARD_REPLACED = auto()    # index, card
    INPUT_CHANGED = auto()    # value
    ANSWER_CORRECT = auto()   # index, target, damage, combo, chain_bonus, is_ultimate, star_pool
    ANSWER_WRONG = auto()     # miss_count, remaining
    PENALTY = auto()          # reason, damage, player_hp, answer
    ENEMY_PARALYZED = auto()  # index, duration_s
    ENEMY_RECOVERED = auto()  # index
    ENEMY_ATTACK = auto()     # index, damage, player_hp
    ENEMY_DEFEATED = auto()   # index, name
    ENEMY_HIDDEN = auto()     # index
    TARGET_CHANGED = auto()   # index
    CLOCK_TICK = auto()       # elapsed_ms
    LEVEL_UP = auto()         # level, battle_points
    PAUSED = auto()
    RESUMED = auto()
    BATTLE_END = auto()       # result, rewards
    MESSAGE = auto()          # text


class CombatSession:
    """
    One battle against a stage roster.

    The session fights with a working copy of the player's progression;
    a win commits it back to the run when the session ends.

    Usage:
        session = CombatSession(run, stage['enemies'], grade, events, rng)
        session.start()
        session.select_card(0)
        session.submit_answer(12)
        session.update(16)      # call every frame
    """

    def __init__(
        self,
        run: RunContext,
        enemies: list[dict[str, Any]],
        grade: dict[str, Any],
        events: EventBus,
        rng: random.Random,
        settings: Optional[GameSettings] = None,
        resolver: Optional[DamageResolver] = None,
    ):
        self.run = run
        self.events = events
        self.rng = rng
        self.settings = settings or GameSettings()
        self.config = self.settings.battle
        self.resolver: DamageResolver = resolver or StandardDamageResolver(rng)

        self.player = run.player.clone()
        self.player.restore_hp()
        self.progression = ProgressionSystem(
            self.player,
            events,
            self.settings.progression,
            grade_name=str(grade.get('name', '')),
        )
        self.dealer = CardDealer(grade, rng, self.config.rank_weights)
        self.enemies: list[Enemy] = [Enemy.from_data(data, rng) for data in enemies]

        self.scheduler = TickScheduler()
        self._clock_handles: list[TimerHandle] = []

        # Session state
        self.phase = BattlePhase.IDLE
        self.hand: list[Card] = []
        self.target_index = 0
        self.combo = 0
        self.last_operator = ""
        self.chain_count = 0
        self.miss_count = 0
        self.star_pool = 0
        self.active_card_index: Optional[int] = None
        self.input_buffer = ""
        self.paused = False
        self.elapsed_ms = 0

        self.result: Optional[str] = None
        self._pending_end: Optional[dict[str, Any]] = None

    # Queries

    @property
    def primary_enemy_name(self) -> str:
        return self.enemies[0].name if self.enemies else "???"

    @property
    def is_boss(self) -> bool:
        return self.config.is_boss(self.primary_enemy_name)

    @property
    def active_card(self) -> Optional[Card]:
        if self.active_card_index is None:
            return None
        return self.hand[self.active_card_index]

    @property
    def target(self) -> Optional[Enemy]:
        if 0 <= self.target_index < len(self.enemies):
            return self.enemies[self.target_index]
        return None

    @property
    def is_over(self) -> bool:
        return self.phase == BattlePhase.ENDED

    def _accepts_input(self) -> bool:
        return self.phase in INPUT_PHASES and not self.paused

    # Lifecycle

    def start(self) -> bool:
        """Deal the hand and start the clocks."""
        if self.phase != BattlePhase.IDLE:
            return False

        self.hand = self.dealer.deal_hand(self.config.hand_size)
        self.phase = BattlePhase.CARD_SELECTION
        self._start_clock()
        logger.info(
            f"Battle started against {self.primary_enemy_name} "
            f"({len(self.enemies)} enemies)"
        )
        self.events.publish(
            BattleEvent.STARTED,
            enemies=[enemy.to_dict() for enemy in self.enemies],
            hand=[card.to_dict() for card in self.hand],
        )

        if not self._any_enemy_alive():
            self._victory()
        return True

    def update(self, dt_ms: int) -> None:
        """Advance session time."""
        self.scheduler.advance(dt_ms)

    def pause(self) -> bool:
        if self.paused or self.phase in CLOSED_PHASES or self.phase == BattlePhase.IDLE:
            return False
        self.paused = True
        self._stop_clock()
        self.events.publish(BattleEvent.PAUSED)
        return True

    def resume(self) -> bool:
        if not self.paused:
            return False
        self.paused = False
        if self.phase not in CLOSED_PHASES:
            self._start_clock()
        self.events.publish(BattleEvent.RESUMED)
        return True

    def _start_clock(self) -> None:
        self._stop_clock()
        tick = self.config.tick_ms
        self._clock_handles = [
            self.scheduler.every(tick, self._display_tick),
            self.scheduler.every(tick, self._enemy_tick),
        ]

    def _stop_clock(self) -> None:
        for handle in self._clock_handles:
            handle.cancel()
        self._clock_handles = []

    # Card selection and input

    def select_card(self, index: int) -> bool:
        """
        Make a card the active challenge.

        Other cards stay locked until this one is resolved or discarded.
        """
        if not self._accepts_input():
            return False
        if not 0 <= index < len(self.hand):
            return False
        if self.active_card_index is not None and self.active_card_index != index:
            return False

        self.active_card_index = index
        self.input_buffer = ""
        self.phase = BattlePhase.ANSWER_ENTRY
        self.events.publish(
            BattleEvent.CARD_SELECTED,
            index=index,
            card=self.hand[index].to_dict(),
        )
        return True

    def enter_digit(self, digit: int | str) -> bool:
        if not self._accepts_input() or self.active_card_index is None:
            return False
        text = str(digit)
        if not text.isdigit():
            return False
        self.input_buffer += text
        self.events.publish(BattleEvent.INPUT_CHANGED, value=self.input_buffer)
        return True

    def erase_digit(self) -> bool:
        if not self._accepts_input() or not self.input_buffer:
            return False
        self.input_buffer = self.input_buffer[:-1]
        self.events.publish(BattleEvent.INPUT_CHANGED, value=self.input_buffer)
        return True

    def confirm(self) -> bool:
        """Submit the keypad buffer. Returns True if the answer was correct."""
        if self.active_card_index is None or self.input_buffer == "":
            return False
        return self.submit_answer(int(self.input_buffer))

    def submit_answer(self, value: int) -> bool:
        """
        Answer the active card.

        Returns:
            True if the answer was correct; False if it was wrong or
            there was no active card to answer
        """
        if not self._accepts_input() or self.active_card_index is None:
            return False

        card = self.hand[self.active_card_index]
        self.input_buffer = ""
        if value == card.answer:
            self._resolve_correct(card)
            return True
        self._resolve_incorrect(card)
        return False

    def discard_card(self, index: int) -> bool:
        """Throw away a card at the cost of penalty damage."""
        if not self._accepts_input() or not 0 <= index < len(self.hand):
            return False

        self._apply_penalty("discard", answer=None)
        self._replace_card(index)
        self.combo = 0
        self.chain_count = 0
        if self.active_card_index == index:
            self._reset_turn()
        return True

    def select_target(self, index: int) -> bool:
        if self.phase in CLOSED_PHASES or not 0 <= index < len(self.enemies):
            return False
        if not self.enemies[index].is_targetable:
            return False
        self.target_index = index
        self.events.publish(BattleEvent.TARGET_CHANGED, index=index)
        return True

    # Answer resolution

    def _resolve_correct(self, card: Card) -> None:
        self.phase = BattlePhase.RESOLVING
        index = self.active_card_index

        if card.operator == self.last_operator:
            self.combo += 1
            self.chain_count += 1
        else:
            self.combo = 1
            self.chain_count = 1
        self.last_operator = card.operator

        target = self.target
        if target is None or target.current_hp <= 0:
            self.target_index = self._first_alive()
            target = self.target

        if target is None:
            self._replace_card(index)
            self._reset_turn()
            self._victory()
            return

        damage_config = self.settings.damage
        result = self.resolver(
            AttackerStats(atk=self.player.stats.atk, spd=self.player.stats.spd),
            card,
            target.snapshot(),
            self.combo,
            self.star_pool,
            damage_config,
        )

        damage = result.damage
        chain_bonus = self.chain_count >= damage_config.chain_threshold
        if chain_bonus:
            damage = int(damage * damage_config.chain_damage_multiplier)
            self.chain_count = 0
            self._message("Chain attack! Damage doubled!")

        target.take_damage(damage)
        self.star_pool += card.rank
        if result.is_ultimate:
            self.star_pool = max(0, self.star_pool - result.star_consumed)
            self._message("Ultimate attack!")

        self.events.publish(
            BattleEvent.ANSWER_CORRECT,
            index=index,
            target=self.target_index,
            damage=damage,
            combo=self.combo,
            chain_bonus=chain_bonus,
            is_ultimate=result.is_ultimate,
            star_pool=self.star_pool,
        )

        if result.paralysis.is_paralyzed:
            duration = max(0, damage_config.paralysis_duration - target.paralysis_chain_count)
            if duration > 0:
                target.paralyze(duration)
                self.events.publish(
                    BattleEvent.ENEMY_PARALYZED,
                    index=self.target_index,
                    duration_s=duration,
                )

        if target.current_hp <= 0 and not target.defeated:
            self._defeat_enemy(self.target_index)

        self._replace_card(index)
        self._reset_turn()

        if not self._any_enemy_alive():
            self._victory()

    def _resolve_incorrect(self, card: Card) -> None:
        self.miss_count += 1
        self.combo = 0
        self.chain_count = 0
        remaining = max(0, self.config.max_misses - self.miss_count)
        self.events.publish(
            BattleEvent.ANSWER_WRONG,
            miss_count=self.miss_count,
            remaining=remaining,
        )
        if self.miss_count >= self.config.max_misses:
            self._apply_penalty("miss", answer=card.answer)
            self._reset_turn()

    def _apply_penalty(self, reason: str, answer: Optional[int]) -> None:
        penalty = self.config.penalty_for(self.player.stats.atk)
        # Penalties never knock the player out
        self.player.current_hp = max(1, self.player.current_hp - penalty)
        self.events.publish(
            BattleEvent.PENALTY,
            reason=reason,
            damage=penalty,
            player_hp=self.player.current_hp,
            answer=answer,
        )

    def _replace_card(self, index: int) -> None:
        card = self.dealer.deal()
        self.hand[index] = card
        self.events.publish(BattleEvent.CARD_REPLACED, index=index, card=card.to_dict())

    def _reset_turn(self) -> None:
        self.active_card_index = None
        self.input_buffer = ""
        self.miss_count = 0
        if self.phase not in CLOSED_PHASES:
            self.phase = BattlePhase.CARD_SELECTION

    # Enemies

    def _first_alive(self) -> int:
        for i, enemy in enumerate(self.enemies):
            if enemy.current_hp > 0:
                return i
        return -1

    def _any_enemy_alive(self) -> bool:
        return any(enemy.current_hp > 0 for enemy in self.enemies)

    def _defeat_enemy(self, index: int) -> None:
        enemy = self.enemies[index]
        enemy.current_hp = 0
        enemy.defeated = True
        self.run.total_kills += 1
        self._message(f"Defeated {enemy.name}!")
        self.events.publish(BattleEvent.ENEMY_DEFEATED, index=index, name=enemy.name)
        self.scheduler.after(self.config.defeat_display_ms, lambda: self._hide_enemy(index))

    def _hide_enemy(self, index: int) -> None:
        self.enemies[index].hidden = True
        self.events.publish(BattleEvent.ENEMY_HIDDEN, index=index)
        target = self.target
        if target is None or not target.is_targetable:
            alive = next(
                (i for i, enemy in enumerate(self.enemies) if enemy.is_targetable),
                None,
            )
            if alive is not None:
                self.target_index = alive
                self.events.publish(BattleEvent.TARGET_CHANGED, index=alive)

    def _display_tick(self) -> None:
        self.elapsed_ms += self.config.tick_ms
        self.events.publish(BattleEvent.CLOCK_TICK, elapsed_ms=self.elapsed_ms)

    def _enemy_tick(self) -> None:
        if self.paused or self.phase in CLOSED_PHASES or self.player.current_hp <= 0:
            return

        tick = self.config.tick_ms
        for i, enemy in enumerate(self.enemies):
            if enemy.paralyzed:
                enemy.paralysis_ms -= tick
                if enemy.paralysis_ms <= 0:
                    enemy.paralyzed = False
                    enemy.paralysis_ms = 0
                    self._message(f"{enemy.name} recovered from paralysis.")
                    self.events.publish(BattleEvent.ENEMY_RECOVERED, index=i)
                continue

            if enemy.current_hp <= 0:
                continue

            enemy.recovery_ms -= tick
            if enemy.recovery_ms > 0:
                continue

            damage = max(1, enemy.atk - self.player.stats.defense)
            self.player.current_hp = max(0, self.player.current_hp - damage)
            enemy.recovery_ms = enemy.recovery_period_ms
            enemy.paralysis_chain_count = 0
            self.events.publish(
                BattleEvent.ENEMY_ATTACK,
                index=i,
                damage=damage,
                player_hp=self.player.current_hp,
            )
            if self.player.current_hp <= 0:
                self._defeat()
                return

    # Outcomes

    def _victory(self) -> None:
        if self.phase in CLOSED_PHASES:
            return
        self.phase = BattlePhase.VICTORY
        self._stop_clock()
        self.run.stop_timer()

        exp = sum(max(0, enemy.exp) for enemy in self.enemies)
        rewards = {'exp': exp}
        self._message(f"Victory! Gained {exp} EXP.")
        levels = self.progression.gain_experience(exp)

        if levels > 0 and self.player.battle_points > 0:
            self.phase = BattlePhase.LEVEL_UP
            self._pending_end = {'result': WIN, 'rewards': rewards}
            self.events.publish(
                BattleEvent.LEVEL_UP,
                level=self.player.level,
                battle_points=self.player.battle_points,
            )
            return

        self._end(WIN, rewards)

    def _defeat(self) -> None:
        if self.phase in CLOSED_PHASES:
            return
        self.phase = BattlePhase.DEFEAT
        self._stop_clock()
        self._message("Defeated...")
        self._end(LOSE, {'exp': 0})

    def allocate(self, stat: str) -> bool:
        if self.phase != BattlePhase.LEVEL_UP:
            return False
        return self.progression.allocate(stat)

    def refund(self, stat: str) -> bool:
        if self.phase != BattlePhase.LEVEL_UP:
            return False
        return self.progression.refund(stat)

    def close_level_up(self) -> bool:
        """
        Commit the level-up allocation and emit the deferred end.

        Returns:
            False while battle points remain unspent
        """
        if self.phase != BattlePhase.LEVEL_UP:
            return False
        if not self.progression.close_allocation():
            self._message("Spend all battle points first.")
            return False

        pending = self._pending_end or {'result': WIN, 'rewards': {'exp': 0}}
        self._pending_end = None
        self._end(pending['result'], pending['rewards'])
        return True

    def _end(self, result: str, rewards: dict[str, int]) -> None:
        self.phase = BattlePhase.ENDED
        self.result = result
        self._stop_clock()
        if result == WIN:
            self.run.player = self.player.clone()
        logger.info(f"Battle ended: {result} ({rewards})")
        self.events.publish(BattleEvent.BATTLE_END, result=result, rewards=dict(rewards))

    def _message(self, text: str) -> None:
        logger.info(text)
        self.events.publish(BattleEvent.MESSAGE, text=text)

    def snapshot(self) -> dict[str, Any]:
        """Presentation view of the session."""
        return {
            'phase': self.phase.name,
            'paused': self.paused,
            'player': {
                'level': self.player.level,
                'hp': self.player.current_hp,
                'max_hp': self.player.max_hp,
                'stats': self.player.stats.to_dict(),
                'battle_points': self.player.battle_points,
                'next_level_threshold': self.player.next_level_threshold,
            },
            'enemies': [enemy.to_dict() for enemy in self.enemies],
            'hand': [card.to_dict() for card in self.hand],
            'target_index': self.target_index,
            'combo': self.combo,
            'last_operator': self.last_operator,
            'chain_count': self.chain_count,
            'miss_count': self.miss_count,
            'star_pool': self.star_pool,
            'active_card_index': self.active_card_index,
            'question': self.active_card.question if self.active_card else None,
            'input': self.input_buffer,
            'elapsed_ms': self.elapsed_ms,
            'result': self.result,
        }
