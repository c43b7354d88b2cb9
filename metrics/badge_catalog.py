"""Default badge catalog.

Thresholds use the units the activity rows are stored in: meters for
distance and elevation, seconds for time.
"""

DEFAULT_BADGES = [
    # Special
    {
        "code": "special_first_activity",
        "name": "First Pedal Stroke",
        "description": "Record your first activity",
        "icon": "🚀",
        "category": "special",
        "level": 1,
        "condition_type": "special",
        "condition_value": 1,
    },
    # Distance
    {
        "code": "distance_100km",
        "name": "Century",
        "description": "Ride a total of 100 km",
        "icon": "🥉",
        "category": "distance",
        "level": 1,
        "condition_type": "total_distance",
        "condition_value": 100_000,
    },
    {
        "code": "distance_1000km",
        "name": "Thousand Club",
        "description": "Ride a total of 1,000 km",
        "icon": "🥈",
        "category": "distance",
        "level": 2,
        "condition_type": "total_distance",
        "condition_value": 1_000_000,
    },
    {
        "code": "distance_5000km",
        "name": "Road Warrior",
        "description": "Ride a total of 5,000 km",
        "icon": "🥇",
        "category": "distance",
        "level": 3,
        "condition_type": "total_distance",
        "condition_value": 5_000_000,
    },
    {
        "code": "distance_10000km",
        "name": "Globetrotter",
        "description": "Ride a total of 10,000 km",
        "icon": "🌍",
        "category": "distance",
        "level": 4,
        "condition_type": "total_distance",
        "condition_value": 10_000_000,
    },
    # Activity count
    {
        "code": "activities_10",
        "name": "Getting Started",
        "description": "Complete 10 activities",
        "icon": "🚴",
        "category": "activities",
        "level": 1,
        "condition_type": "total_activities",
        "condition_value": 10,
    },
    {
        "code": "activities_50",
        "name": "Regular",
        "description": "Complete 50 activities",
        "icon": "💪",
        "category": "activities",
        "level": 2,
        "condition_type": "total_activities",
        "condition_value": 50,
    },
    {
        "code": "activities_100",
        "name": "Committed",
        "description": "Complete 100 activities",
        "icon": "🏅",
        "category": "activities",
        "level": 3,
        "condition_type": "total_activities",
        "condition_value": 100,
    },
    # Elevation
    {
        "code": "elevation_1000m",
        "name": "Hill Climber",
        "description": "Climb a total of 1,000 m",
        "icon": "⛰️",
        "category": "elevation",
        "level": 1,
        "condition_type": "total_elevation",
        "condition_value": 1_000,
    },
    {
        "code": "elevation_8848m",
        "name": "Everest",
        "description": "Climb the height of Everest (8,848 m)",
        "icon": "🏔️",
        "category": "elevation",
        "level": 2,
        "condition_type": "total_elevation",
        "condition_value": 8_848,
    },
    {
        "code": "elevation_50000m",
        "name": "Mountain Goat",
        "description": "Climb a total of 50,000 m",
        "icon": "🐐",
        "category": "elevation",
        "level": 3,
        "condition_type": "total_elevation",
        "condition_value": 50_000,
    },
    # Streaks
    {
        "code": "streak_3_days",
        "name": "On a Roll",
        "description": "Train 3 days in a row",
        "icon": "🔥",
        "category": "streak",
        "level": 1,
        "condition_type": "consecutive_days",
        "condition_value": 3,
    },
    {
        "code": "streak_7_days",
        "name": "Full Week",
        "description": "Train 7 days in a row",
        "icon": "⚡",
        "category": "streak",
        "level": 2,
        "condition_type": "consecutive_days",
        "condition_value": 7,
    },
    {
        "code": "streak_30_days",
        "name": "Unstoppable",
        "description": "Train 30 days in a row",
        "icon": "👑",
        "category": "streak",
        "level": 3,
        "condition_type": "consecutive_days",
        "condition_value": 30,
    },
    # Time
    {
        "code": "time_10h",
        "name": "Ten Hours",
        "description": "Train for a total of 10 hours",
        "icon": "⏱️",
        "category": "time",
        "level": 1,
        "condition_type": "total_time",
        "condition_value": 10 * 3600,
    },
    {
        "code": "time_100h",
        "name": "Hundred Hours",
        "description": "Train for a total of 100 hours",
        "icon": "⌛",
        "category": "time",
        "level": 2,
        "condition_type": "total_time",
        "condition_value": 100 * 3600,
    },
]
