from pydantic import BaseModel


class DashboardStatsOut(BaseModel):
    total_income_cents: int = 0
    total_patients: int = 0
    appointments_today: int = 0
    pending_appointments: int = 0


class GoalProgressOut(BaseModel):
    goal_cents: int
    income_cents: int
    remaining_cents: int
    percent: float
    reached: bool
