"""Macro-nutrient value types."""

from dataclasses import dataclass

PROTEIN_KCAL_PER_G = 4
CARBS_KCAL_PER_G = 4
FAT_KCAL_PER_G = 9


@dataclass(frozen=True)
class MacroTargets:
    """Whole-gram macro targets with derived calories."""

    protein: int
    carbs: int
    fat: int

    @classmethod
    def zero(cls) -> "MacroTargets":
        """Return an empty macro target."""
        return cls(protein=0, carbs=0, fat=0)

    @property
    def calories(self) -> int:
        """Calories derived from the macro split."""
        return (
            self.protein * PROTEIN_KCAL_PER_G
            + self.carbs * CARBS_KCAL_PER_G
            + self.fat * FAT_KCAL_PER_G
        )

    @property
    def is_zero(self) -> bool:
        """Return True when every macro is zero."""
        return self.protein == 0 and self.carbs == 0 and self.fat == 0

    def add(self, other: "MacroTargets") -> "MacroTargets":
        """Return the component-wise sum."""
        return MacroTargets(
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
        )

    def subtract(self, other: "MacroTargets") -> "MacroTargets":
        """Return the component-wise difference, floored at zero."""
        return MacroTargets(
            protein=max(0, self.protein - other.protein),
            carbs=max(0, self.carbs - other.carbs),
            fat=max(0, self.fat - other.fat),
        )

    def scale(self, factor: float) -> "MacroTargets":
        """Return every macro multiplied by factor, truncated to whole grams."""
        return MacroTargets(
            protein=int(self.protein * factor),
            carbs=int(self.carbs * factor),
            fat=int(self.fat * factor),
        )

    def absolute_difference(self, other: "MacroTargets") -> "MacroTargets":
        """Return the per-macro absolute difference."""
        return MacroTargets(
            protein=abs(self.protein - other.protein),
            carbs=abs(self.carbs - other.carbs),
            fat=abs(self.fat - other.fat),
        )

    def to_dict(self) -> dict[str, int]:
        """Serialize macros with derived calories."""
        return {
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
            "calories": self.calories,
        }


@dataclass(frozen=True)
class ConsumedMacros:
    """Consumption accumulated in a window from logged meals."""

    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0

    @property
    def macros(self) -> MacroTargets:
        """Consumption as a macro target value."""
        return MacroTargets(protein=self.protein, carbs=self.carbs, fat=self.fat)

    def add(
        self, calories: int, protein: int, carbs: int, fat: int
    ) -> "ConsumedMacros":
        """Return consumption with another meal's totals added."""
        return ConsumedMacros(
            calories=self.calories + calories,
            protein=self.protein + protein,
            carbs=self.carbs + carbs,
            fat=self.fat + fat,
        )
