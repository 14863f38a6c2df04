"""Admin domain - moderation of venues, schedules, reviews and users"""
