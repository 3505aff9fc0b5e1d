"""Database access: obtaining EXPLAIN output through SQLAlchemy."""

from plancheck.db.explain import SQLAlchemyPlanSource, explain_statement, render_plan_text

__all__ = [
    "SQLAlchemyPlanSource",
    "explain_statement",
    "render_plan_text",
]
