"""
Dashboard Models

Overview cards, alerts and the recent-activity feed built by the gateway
from the WordPress estimate list and product catalogue.
"""

from pydantic import BaseModel


class DashboardStat(BaseModel):
    title: str
    value: str
    hint: str = ""


class DashboardAlert(BaseModel):
    title: str
    description: str = ""


class ActivityItem(BaseModel):
    title: str
    description: str = ""
    when: str = "Unknown"


class ProductCounts(BaseModel):
    base: int = 0
    addons: int = 0
    packages: int = 0


class Dashboard(BaseModel):
    stats: list[DashboardStat] = []
    alerts: list[DashboardAlert] = []
    activity: list[ActivityItem] = []

    class Config:
        extra = "ignore"
