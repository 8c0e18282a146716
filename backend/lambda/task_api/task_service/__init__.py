"""task_service — Task CRUD core for the tasks API Lambda.

Provides:
    - Record Store abstraction over the DynamoDB tasks table
    - Task Repository enforcing the task schema and id uniqueness
    - Static (method, path) router
    - Request handler translating repository outcomes to HTTP responses
"""

__version__ = "1.0.0"
