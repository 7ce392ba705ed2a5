"""
QuizAPI Backend - Application Package Initializer
==================================================

What: Marks the `quizapi` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend is a thin HTTP surface around one request pipeline:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← handlers, HTTP concerns only
    ├─────────────────────────────────────┤
    │     Middleware (Dispatch Pipeline)  │  ← context, auth, rate limit, errors
    ├─────────────────────────────────────┤
    │   Services (Metrics, Token issuing) │  ← explicitly constructed, injectable
    └─────────────────────────────────────┘

    Quiz persistence lives outside this package; handlers reach it as an
    opaque collaborator.
"""

__version__ = "1.0.0"
