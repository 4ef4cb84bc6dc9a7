"""
Difficulty list derived from the grade master data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tower_engine.errors import DataError
from tower_engine.resources.database import Database


@dataclass(frozen=True)
class Difficulty:
    """
    A selectable difficulty.

    Attributes:
        id: Stable id saved with the run ("grade_<n>")
        label: Display label
        grade: Grade name, used for stat increments
        grade_id: Id of the grade record driving card generation
    """
    id: str
    label: str
    grade: str
    grade_id: str


def difficulty_list(database: Database) -> list[Difficulty]:
    """One difficulty per grade, in grade order."""
    return [
        Difficulty(
            id=f"grade_{index}",
            label=str(grade.get('name', grade['id'])).upper(),
            grade=str(grade.get('name', grade['id'])),
            grade_id=str(grade['id']),
        )
        for index, grade in enumerate(database.grade_list())
    ]


def find_difficulty(difficulties: list[Difficulty], difficulty_id: Optional[str]) -> Difficulty:
    """
    Look up a difficulty by id.

    Unknown ids fall back to the second difficulty (the first when there
    is only one).
    """
    if not difficulties:
        raise DataError("No difficulties available")
    for difficulty in difficulties:
        if difficulty.id == difficulty_id:
            return difficulty
    return difficulties[1] if len(difficulties) > 1 else difficulties[0]
