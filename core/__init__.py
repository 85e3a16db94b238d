"""
Core Package

Exchange-agnostic building blocks shared by the pipeline and the API:
- config: Pydantic Settings loaded from the environment
- logging: Application logger setup
- schemas: Pydantic models for every record on the board
- exceptions: Exchange error hierarchy
"""
