"""Catalogue of predefined learning goals and their focus areas."""

from __future__ import annotations

from typing import Dict, List, TypedDict


class LearningPath(TypedDict):
    focus_areas: List[str]
    sub_topics: List[str]


LEARNING_PATHS: Dict[str, LearningPath] = {
    "Web Development": {
        "focus_areas": ["Front-end", "Back-end", "Full-stack", "UI/UX Design", "Web Security", "Performance Optimization"],
        "sub_topics": ["HTML/CSS", "JavaScript", "React", "Node.js", "Databases", "APIs"],
    },
    "Data Science": {
        "focus_areas": ["Data Analysis", "Machine Learning", "Data Visualization", "Big Data", "Statistical Analysis", "Deep Learning"],
        "sub_topics": ["Python", "R", "SQL", "TensorFlow", "Data Mining", "NLP"],
    },
    "Mobile Development": {
        "focus_areas": ["iOS Development", "Android Development", "Cross-Platform", "Mobile UI/UX", "App Security"],
        "sub_topics": ["Swift", "Kotlin", "React Native", "Flutter", "Mobile Architecture"],
    },
    "Cloud Computing": {
        "focus_areas": ["AWS", "Azure", "Google Cloud", "DevOps", "Cloud Security", "Serverless"],
        "sub_topics": ["Infrastructure as Code", "Containers", "Microservices", "Cloud Architecture"],
    },
    "Digital Marketing": {
        "focus_areas": ["SEO", "Social Media Marketing", "Content Marketing", "Paid Advertising", "Email Marketing"],
        "sub_topics": ["Analytics", "Marketing Strategy", "Brand Management", "Marketing Automation"],
    },
    "Artificial Intelligence": {
        "focus_areas": ["Machine Learning", "Deep Learning", "Computer Vision", "NLP", "Robotics"],
        "sub_topics": ["Neural Networks", "Reinforcement Learning", "AI Ethics", "AI Applications"],
    },
    "Cybersecurity": {
        "focus_areas": ["Network Security", "Application Security", "Ethical Hacking", "Security Operations"],
        "sub_topics": ["Cryptography", "Threat Analysis", "Incident Response", "Security Tools"],
    },
}

DEFAULT_FOCUS_AREAS = [
    "Fundamentals",
    "Advanced Concepts",
    "Practical Applications",
    "Industry Best Practices",
    "Specialized Topics",
]


def focus_areas_for_goal(goal: str) -> List[str]:
    """Focus areas for a catalogue goal, or the generic set for custom goals."""
    wanted = goal.strip().lower()
    for name, path in LEARNING_PATHS.items():
        if name.lower() == wanted:
            return list(path["focus_areas"])
    return list(DEFAULT_FOCUS_AREAS)


def is_custom_goal(goal: str) -> bool:
    wanted = goal.strip().lower()
    return all(name.lower() != wanted for name in LEARNING_PATHS)


__all__ = ["DEFAULT_FOCUS_AREAS", "LEARNING_PATHS", "LearningPath", "focus_areas_for_goal", "is_custom_goal"]
