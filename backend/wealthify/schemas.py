from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, computed_field, field_validator, model_validator

from .services.money import cents_to_amount, recurring_monthly_cents

Frequency = Literal["WEEKLY", "BI_WEEKLY", "MONTHLY", "QUARTERLY", "YEARLY", "ONE_TIME"]
IncomeType = Literal["SALARY", "BUSINESS", "FREELANCE", "INVESTMENT", "PASSIVE", "OTHER"]
ExpenseCategory = Literal[
    "HOUSING", "TRANSPORTATION", "FOOD", "UTILITIES", "ENTERTAINMENT",
    "HEALTHCARE", "BUSINESS", "PERSONAL", "OTHER",
]
ExpenseType = Literal["FIXED", "VARIABLE", "STARTUP_BURN"]
GoalCategory = Literal[
    "EMERGENCY_FUND", "DEBT_PAYOFF", "PROPERTY", "VEHICLE",
    "INVESTMENT", "VACATION", "BUSINESS", "OTHER",
]
PurchaseType = Literal["house", "vehicle", "wedding", "business", "custom"]

# Amounts arrive in major units (e.g. 1234.56) and are stored as cents.
Amount = Annotated[Decimal, Field(gt=0, max_digits=14, decimal_places=2)]
NonNegativeAmount = Annotated[Decimal, Field(ge=0, max_digits=14, decimal_places=2)]
Notes = Annotated[str, Field(max_length=500)]


def _clean_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    if len(value) > 100:
        raise ValueError("must be at most 100 characters")
    return value


def _not_future(value: date) -> date:
    if value > date.today():
        raise ValueError("cannot be in the future")
    return value


NotFutureDate = Annotated[date, AfterValidator(_not_future)]


def _bcrypt_length(value: str) -> str:
    if len(value.encode("utf-8")) > 72:
        raise ValueError("must be at most 72 bytes")
    return value


# bcrypt rejects secrets longer than 72 bytes.
Password = Annotated[str, Field(min_length=8), AfterValidator(_bcrypt_length)]

# Field named `date` below would shadow the type inside the class body.
_Date = date


class _NamedInput(BaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def _name(cls, v):
        return _clean_name(v)


# ─────────────────────────────────────────────────────────────────────────────
# Health
# ─────────────────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str


# ─────────────────────────────────────────────────────────────────────────────
# Auth / user
# ─────────────────────────────────────────────────────────────────────────────


class SignUpRequest(_NamedInput):
    email: str
    name: str
    password: Password

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain or len(v) > 255:
            raise ValueError("must be a valid email address")
        return v


class SignInRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.strip().lower()


class UserUpdate(_NamedInput):
    name: Optional[str] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class PasswordChange(BaseModel):
    current_password: str
    new_password: Password


class UserSchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    email: str
    name: str
    currency: str
    current_balance_cents: int
    starting_balance_cents: int
    balance_updated_at: Optional[datetime] = None
    created_at: datetime

    @computed_field
    @property
    def current_balance(self) -> float:
        return cents_to_amount(self.current_balance_cents)


# ─────────────────────────────────────────────────────────────────────────────
# Income streams
# ─────────────────────────────────────────────────────────────────────────────


class _Schedule(BaseModel):
    @model_validator(mode="after")
    def _check_schedule(self):
        start = getattr(self, "earned_date", None) or getattr(self, "incurred_date", None)
        end = getattr(self, "end_date", None)
        if start and end and end < start:
            raise ValueError("end_date must not be before the start date")
        return self


class IncomeStreamCreate(_NamedInput, _Schedule):
    name: str
    type: IncomeType = "SALARY"
    expected_monthly: Amount
    actual_monthly: Optional[NonNegativeAmount] = None
    frequency: Frequency = "MONTHLY"
    earned_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True


class IncomeStreamUpdate(_NamedInput, _Schedule):
    name: Optional[str] = None
    type: Optional[IncomeType] = None
    expected_monthly: Optional[Amount] = None
    actual_monthly: Optional[NonNegativeAmount] = None
    frequency: Optional[Frequency] = None
    earned_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class IncomeStreamSchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    name: str
    type: str
    expected_monthly_cents: int
    actual_monthly_cents: Optional[int] = None
    frequency: str
    earned_date: Optional[str] = None
    end_date: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def expected_monthly(self) -> float:
        return cents_to_amount(self.expected_monthly_cents)

    @computed_field
    @property
    def actual_monthly(self) -> Optional[float]:
        if self.actual_monthly_cents is None:
            return None
        return cents_to_amount(self.actual_monthly_cents)

    @computed_field
    @property
    def monthly_equivalent(self) -> float:
        amount = self.actual_monthly_cents
        if amount is None:
            amount = self.expected_monthly_cents
        return cents_to_amount(recurring_monthly_cents(amount, self.frequency))


# ─────────────────────────────────────────────────────────────────────────────
# Expenses
# ─────────────────────────────────────────────────────────────────────────────


class ExpenseCreate(_NamedInput, _Schedule):
    name: str
    category: ExpenseCategory = "OTHER"
    type: ExpenseType = "FIXED"
    amount: Amount
    frequency: Frequency = "MONTHLY"
    incurred_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True


class ExpenseUpdate(_NamedInput, _Schedule):
    name: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    type: Optional[ExpenseType] = None
    amount: Optional[Amount] = None
    frequency: Optional[Frequency] = None
    incurred_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class ExpenseSchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    name: str
    category: str
    type: str
    amount_cents: int
    frequency: str
    incurred_date: Optional[str] = None
    end_date: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def amount(self) -> float:
        return cents_to_amount(self.amount_cents)

    @computed_field
    @property
    def monthly_equivalent(self) -> float:
        return cents_to_amount(recurring_monthly_cents(self.amount_cents, self.frequency))


# ─────────────────────────────────────────────────────────────────────────────
# Monthly entries
# ─────────────────────────────────────────────────────────────────────────────


class _EntryInput(BaseModel):
    month: NotFutureDate
    amount: Amount
    notes: Optional[Notes] = None


class IncomeEntryCreate(_EntryInput):
    income_stream_id: int


class ExpenseEntryCreate(_EntryInput):
    expense_id: int


class EntryUpdate(BaseModel):
    amount: Optional[Amount] = None
    notes: Optional[Notes] = None


class _EntrySchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    month: str
    amount_cents: int
    notes: Optional[str] = None
    is_generated: bool
    created_at: datetime

    @computed_field
    @property
    def amount(self) -> float:
        return cents_to_amount(self.amount_cents)


class IncomeEntrySchema(_EntrySchema):
    income_stream_id: int
    income_stream_name: Optional[str] = None


class ExpenseEntrySchema(_EntrySchema):
    expense_id: int
    expense_name: Optional[str] = None
    expense_category: Optional[str] = None


class GenerateEntriesRequest(BaseModel):
    type: Literal["income", "expense", "all"] = "all"


class GenerateEntriesResponse(BaseModel):
    income_entries: int
    expense_entries: int
    total: int
    message: str


class UpcomingEntriesResponse(BaseModel):
    month: str
    created: int


# ─────────────────────────────────────────────────────────────────────────────
# One-time income / expense
# ─────────────────────────────────────────────────────────────────────────────


class OneTimeCreate(_NamedInput):
    name: str
    amount: Amount
    date: _Date
    category: str = Field(min_length=1, max_length=50)
    notes: Optional[Notes] = None


class OneTimeUpdate(_NamedInput):
    name: Optional[str] = None
    amount: Optional[Amount] = None
    date: Optional[_Date] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    notes: Optional[Notes] = None


class OneTimeSchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    name: str
    amount_cents: int
    date: str
    category: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def amount(self) -> float:
        return cents_to_amount(self.amount_cents)


# ─────────────────────────────────────────────────────────────────────────────
# Goals and contributions
# ─────────────────────────────────────────────────────────────────────────────


class GoalCreate(_NamedInput):
    name: str
    description: Optional[Notes] = None
    target_amount: Amount
    current_amount: NonNegativeAmount = Decimal("0")
    target_date: date
    priority: int = Field(default=1, ge=1, le=10)
    category: GoalCategory = "OTHER"

    @field_validator("target_date")
    @classmethod
    def _future(cls, v: date) -> date:
        if v <= date.today():
            raise ValueError("target_date must be in the future")
        return v


class GoalUpdate(_NamedInput):
    name: Optional[str] = None
    description: Optional[Notes] = None
    target_amount: Optional[Amount] = None
    target_date: Optional[date] = None
    priority: Optional[int] = Field(default=None, ge=1, le=10)
    category: Optional[GoalCategory] = None


class GoalSchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    name: str
    description: Optional[str] = None
    target_amount_cents: int
    current_amount_cents: int
    target_date: str
    priority: int
    category: str
    is_completed: bool
    image_path: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def target_amount(self) -> float:
        return cents_to_amount(self.target_amount_cents)

    @computed_field
    @property
    def current_amount(self) -> float:
        return cents_to_amount(self.current_amount_cents)

    @computed_field
    @property
    def progress(self) -> float:
        if self.target_amount_cents <= 0:
            return 0.0
        return round(min(100.0, self.current_amount_cents / self.target_amount_cents * 100), 2)

    @computed_field
    @property
    def image_url(self) -> Optional[str]:
        return f"/media/{self.image_path}" if self.image_path else None


class GoalAnalysisSchema(BaseModel):
    goal_id: int
    progress: float
    months_remaining: int
    required_monthly_savings_cents: int
    current_monthly_savings_cents: int
    income_gap_cents: int
    is_achievable: bool


class ContributionCreate(BaseModel):
    amount: Amount
    month: Optional[NotFutureDate] = None      # defaults to today
    notes: Optional[Notes] = None


class ContributionSchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    goal_id: int
    amount_cents: int
    month: str
    notes: Optional[str] = None
    created_at: datetime

    @computed_field
    @property
    def amount(self) -> float:
        return cents_to_amount(self.amount_cents)


# ─────────────────────────────────────────────────────────────────────────────
# Balance
# ─────────────────────────────────────────────────────────────────────────────


class BalanceUpdate(BaseModel):
    balance: NonNegativeAmount
    notes: Optional[Notes] = None


class BalanceEntrySchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    amount_cents: int
    previous_amount_cents: int
    change_amount_cents: int
    entry_type: str
    notes: Optional[str] = None
    created_at: datetime


class BalanceResponse(BaseModel):
    current_balance_cents: int
    starting_balance_cents: int
    balance_updated_at: Optional[datetime] = None
    entries: list[BalanceEntrySchema]

    @computed_field
    @property
    def current_balance(self) -> float:
        return cents_to_amount(self.current_balance_cents)

    @computed_field
    @property
    def starting_balance(self) -> float:
        return cents_to_amount(self.starting_balance_cents)


# ─────────────────────────────────────────────────────────────────────────────
# Snapshots
# ─────────────────────────────────────────────────────────────────────────────


class SnapshotSchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    month: str
    total_income_cents: int
    total_expenses_cents: int
    total_savings_cents: int
    burn_rate: float
    savings_rate: float
    health_score: int
    active_goals_count: int
    completed_goals_count: int
    total_goals_value_cents: int
    total_goals_progress_cents: int
    income_streams_count: int
    expenses_count: int
    income_change_percent: Optional[float] = None
    expense_change_percent: Optional[float] = None
    savings_change_percent: Optional[float] = None
    health_score_change: Optional[int] = None
    created_at: datetime
    updated_at: datetime


# ─────────────────────────────────────────────────────────────────────────────
# Purchase plans
# ─────────────────────────────────────────────────────────────────────────────


class PurchasePlanCreate(_NamedInput):
    name: str
    purchase_type: PurchaseType
    target_amount: Amount
    current_saved: NonNegativeAmount = Decimal("0")
    desired_timeline_months: int = Field(ge=1)
    down_payment_ratio: Optional[float] = Field(default=None, ge=0, le=1)
    appreciation_rate: Optional[float] = None
    notes: Optional[Notes] = None


class PurchasePlanUpdate(_NamedInput):
    id: int
    name: Optional[str] = None
    purchase_type: Optional[PurchaseType] = None
    target_amount: Optional[Amount] = None
    current_saved: Optional[NonNegativeAmount] = None
    desired_timeline_months: Optional[int] = Field(default=None, ge=1)
    down_payment_ratio: Optional[float] = Field(default=None, ge=0, le=1)
    appreciation_rate: Optional[float] = None
    notes: Optional[Notes] = None


class PurchasePlanSchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    name: str
    purchase_type: str
    target_amount_cents: int
    current_saved_cents: int
    desired_timeline_months: int
    down_payment_ratio: Optional[float] = None
    appreciation_rate: Optional[float] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def target_amount(self) -> float:
        return cents_to_amount(self.target_amount_cents)

    @computed_field
    @property
    def current_saved(self) -> float:
        return cents_to_amount(self.current_saved_cents)


# ─────────────────────────────────────────────────────────────────────────────
# Analytics
# ─────────────────────────────────────────────────────────────────────────────


class AffordabilityRequest(BaseModel):
    target_amount: Amount
    current_amount: NonNegativeAmount = Decimal("0")
    timeline_months: Optional[int] = Field(default=None, ge=1)


class GoalCommitment(BaseModel):
    amount: Amount
    months_to_target: int = Field(ge=1, le=600)


class LifestyleAffordabilityRequest(BaseModel):
    # None: use the user's open goals (amount still to save, months to target date).
    goals: Optional[list[GoalCommitment]] = None
