"""Repository helpers for the database persistence layer."""

from .career_plans import CareerPlanRepository, DatabaseCareerPlanStore, career_plans

__all__ = ["CareerPlanRepository", "DatabaseCareerPlanStore", "career_plans"]
