"""ecs_rotator - Task definition rotation for ECS services.

Provides:
    - Image lookup against ECR (latest pushed or floating tag)
    - Task definition candidate construction
    - Revision registration and service repointing
    - Pinned and floating rotation strategies
"""

__version__ = "1.0.0"
