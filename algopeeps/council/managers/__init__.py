"""Backend-facing managers.

Managers raise domain exceptions (``SessionCreationError``,
``NoActiveSessionError``, ``PromptError``), never transport exceptions --
translating those is the backend client's responsibility.
"""
