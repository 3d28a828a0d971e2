# Application Curriculum Package
from .bubble import compute_knowledge_bubble, identify_gaps
from .recommender import (
    BehavioralSignals,
    check_prerequisites,
    frequency_score,
    generate_recommendations,
)

__all__ = [
    "compute_knowledge_bubble",
    "identify_gaps",
    "BehavioralSignals",
    "check_prerequisites",
    "frequency_score",
    "generate_recommendations",
]
