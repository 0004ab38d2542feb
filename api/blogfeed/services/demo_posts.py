"""In-memory demo posts served by ``get_post`` when the owning source cannot answer.

Only used when ``BLOG_DEMO_FALLBACK_ENABLED`` is set (local development).
"""

from typing import Any

DEMO_POSTS: tuple[dict[str, Any], ...] = (
    {
        "id": 1,
        "title": "The Psychology of Happiness: Understanding What Truly Makes Us Happy",
        "description": "Explore the fascinating world of positive psychology and discover the science behind lasting happiness...",
        "content": "Positive psychology is a branch of psychology that focuses on the study of positive emotions, strengths, and factors that contribute to a fulfilling life.",
        "author": "Pataveekorn C.",
        "date": "2024-12-15T00:00:00.000Z",
        "category": "Inspiration",
        "image": None,
        "likes": 45,
    },
    {
        "id": 2,
        "title": "The Power of Daily Habits: Small Changes, Big Results",
        "description": "Discover how small daily habits can transform your life and help you achieve your long-term goals...",
        "content": "Habits are the foundation of personal success. Small, consistent actions lead to significant life changes over time.",
        "author": "Pataveekorn C.",
        "date": "2024-12-10T00:00:00.000Z",
        "category": "General",
        "image": None,
        "likes": 32,
    },
    {
        "id": 3,
        "title": "Mindfulness and Meditation: Finding Peace in a Busy World",
        "description": "Learn practical mindfulness techniques to reduce stress and find inner peace in your daily life...",
        "content": "Mindfulness and meditation offer powerful tools for managing stress and finding inner peace.",
        "author": "Pataveekorn C.",
        "date": "2024-12-08T00:00:00.000Z",
        "category": "Inspiration",
        "image": None,
        "likes": 67,
    },
    {
        "id": 4,
        "title": "Building Resilience: How to Bounce Back from Life's Challenges",
        "description": "Learn the key principles of resilience and how to develop this crucial life skill...",
        "content": "Resilience is the ability to adapt and bounce back from adversity.",
        "author": "Pataveekorn C.",
        "date": "2024-12-03T00:00:00.000Z",
        "category": "General",
        "image": None,
        "likes": 28,
    },
    {
        "id": 5,
        "title": "The Art of Time Management: Maximizing Productivity in Your Daily Life",
        "description": "Learn effective time management strategies to boost your productivity and achieve your goals...",
        "content": "Time management is a crucial skill for success in both personal and professional life.",
        "author": "Pataveekorn C.",
        "date": "2024-11-28T00:00:00.000Z",
        "category": "General",
        "image": None,
        "likes": 41,
    },
    {
        "id": 6,
        "title": "Digital Detox: Reclaiming Your Life from Technology",
        "description": "Discover the benefits of taking breaks from technology and how to implement a digital detox...",
        "content": "Taking time away from technology can have profound benefits for mental health and well-being.",
        "author": "Pataveekorn C.",
        "date": "2024-11-25T00:00:00.000Z",
        "category": "Inspiration",
        "image": None,
        "likes": 33,
    },
    {
        "id": 7,
        "title": "The Science of Sleep: Why Quality Rest Matters",
        "description": "Explore the importance of sleep for health, productivity, and overall well-being...",
        "content": "Sleep is one of the most important factors for physical and mental health.",
        "author": "Pataveekorn C.",
        "date": "2024-11-20T00:00:00.000Z",
        "category": "General",
        "image": None,
        "likes": 56,
    },
    {
        "id": 8,
        "title": "Creative Problem Solving: Thinking Outside the Box",
        "description": "Learn innovative approaches to problem-solving that can help you overcome challenges...",
        "content": "Creative problem-solving involves looking at challenges from new perspectives and finding innovative solutions.",
        "author": "Pataveekorn C.",
        "date": "2024-11-15T00:00:00.000Z",
        "category": "Inspiration",
        "image": None,
        "likes": 29,
    },
)


def find_demo_post(native_id: str) -> dict[str, Any] | None:
    for post in DEMO_POSTS:
        if str(post["id"]) == native_id:
            return dict(post)
    return None
