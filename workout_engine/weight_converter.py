class WeightConverter:
    """Convert stored kilogram values for display in the trainee's unit."""

    KG_TO_LB = 2.20462
    UNITS = ("kg", "lb")

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return round(kg * WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb / WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def for_display(kg: float | None, unit: str) -> float | None:
        if kg is None:
            return None
        if unit not in WeightConverter.UNITS:
            raise ValueError(f"unknown weight unit: {unit}")
        if unit == "lb":
            return WeightConverter.kg_to_lb(kg)
        return round(kg, 2)

    @staticmethod
    def to_storage(value: float, unit: str) -> float:
        """Normalize an entered value to kilograms."""
        if unit not in WeightConverter.UNITS:
            raise ValueError(f"unknown weight unit: {unit}")
        if unit == "lb":
            return WeightConverter.lb_to_kg(value)
        return value
