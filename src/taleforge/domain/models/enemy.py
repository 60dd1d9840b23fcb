from dataclasses import dataclass
from typing import Optional


BOSS_DIFFICULTY_THRESHOLD = 1000


@dataclass
class Enemy:
    id: int
    name: str
    difficulty: int
    health: int
    attack: int
    defense: int
    sprite_path: Optional[str] = None

    @property
    def is_boss(self) -> bool:
        return int(self.difficulty) >= BOSS_DIFFICULTY_THRESHOLD
