"""Read-only selectors for the leave kernel."""

from leave_kernel.selectors.base import BaseSelector
from leave_kernel.selectors.dashboard_selector import DashboardSelector, DashboardStats

__all__ = ["BaseSelector", "DashboardSelector", "DashboardStats"]
