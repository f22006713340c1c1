"""Built-in split scenarios covering the classic rounding edge cases."""

from dataclasses import dataclass
from decimal import Decimal

from .models import Participant, RoundingStrategy, SplitOptions, SplitType

DEMO_PARTICIPANTS = [
    Participant(user_id="user1", name="Alice", email="alice@example.com"),
    Participant(user_id="user2", name="Bob", email="bob@example.com"),
    Participant(user_id="user3", name="Charlie", email="charlie@example.com"),
    Participant(user_id="user4", name="Diana", email="diana@example.com"),
    Participant(user_id="user5", name="Eve", email="eve@example.com"),
    Participant(user_id="user6", name="Frank", email="frank@example.com"),
    Participant(user_id="user7", name="Grace", email="grace@example.com"),
]


@dataclass(frozen=True)
class DemoScenario:
    """A named split input."""

    name: str
    description: str
    total_amount: Decimal
    split_type: SplitType
    participants: list[Participant]
    custom_amounts: dict[str, Decimal] | None = None
    custom_percentages: dict[str, Decimal] | None = None

    def to_options(
        self, rounding_strategy: RoundingStrategy = "distribute", precision: int = 2
    ) -> SplitOptions:
        return SplitOptions(
            total_amount=self.total_amount,
            participants=self.participants,
            split_type=self.split_type,
            custom_amounts=self.custom_amounts,
            custom_percentages=self.custom_percentages,
            precision=precision,
            rounding_strategy=rounding_strategy,
        )


DEMO_SCENARIOS = [
    DemoScenario(
        name="Equal Split - Rounding Issue",
        description="10.00 split among 3 people (3.33 each only adds up to 9.99)",
        total_amount=Decimal("10.00"),
        split_type="equal",
        participants=DEMO_PARTICIPANTS[:3],
    ),
    DemoScenario(
        name="Percentage Split - Irrational Numbers",
        description="100.00 split 33.33% each among 3 people (only 99.99%)",
        total_amount=Decimal("100.00"),
        split_type="percentage",
        participants=DEMO_PARTICIPANTS[:3],
        custom_percentages={
            "user1": Decimal("33.33"),
            "user2": Decimal("33.33"),
            "user3": Decimal("33.33"),
        },
    ),
    DemoScenario(
        name="Custom Amounts - Mismatch",
        description="50.00 with custom amounts that don't sum to the total",
        total_amount=Decimal("50.00"),
        split_type="custom",
        participants=DEMO_PARTICIPANTS[:2],
        custom_amounts={"user1": Decimal("20.00"), "user2": Decimal("30.01")},
    ),
    DemoScenario(
        name="Small Amount - Precision Test",
        description="0.03 split among 2 people",
        total_amount=Decimal("0.03"),
        split_type="equal",
        participants=DEMO_PARTICIPANTS[:2],
    ),
    DemoScenario(
        name="Many Participants",
        description="100.00 split among 7 people (systematic distribution)",
        total_amount=Decimal("100.00"),
        split_type="equal",
        participants=DEMO_PARTICIPANTS,
    ),
]
