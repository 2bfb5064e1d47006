"""
Custom exceptions for the LifeOS analytics engine.
Provides specific exception types so the request layer can map them to responses.
"""


class LifeOSException(Exception):
    """Base exception for the LifeOS application"""
    pass


class NotFoundException(LifeOSException):
    """Raised when a referenced entity is missing or not owned by the caller"""
    entity = "Entity"

    def __init__(self, entity_id: int):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} with ID {entity_id} not found")


class GoalNotFoundException(NotFoundException):
    """Raised when a financial goal is not found"""
    entity = "Goal"


class FitnessGoalNotFoundException(NotFoundException):
    """Raised when a fitness goal is not found"""
    entity = "Fitness goal"


class HabitNotFoundException(NotFoundException):
    """Raised when a habit is not found"""
    entity = "Habit"


class SystemNotFoundException(NotFoundException):
    """Raised when a life system is not found"""
    entity = "Life system"


class ContributionNotFoundException(NotFoundException):
    """Raised when a recurring contribution is not found"""
    entity = "Recurring contribution"


class MilestoneNotFoundException(NotFoundException):
    """Raised when a goal milestone is not found"""
    entity = "Milestone"


class ValidationException(LifeOSException):
    """Raised when data validation fails"""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Validation error for {field}: {message}")
