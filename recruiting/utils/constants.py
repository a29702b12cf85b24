"""
Constants used across the recruiting workflow.
"""

# Real-time event names pushed over a user's private channel
EVENT_APPLICANT_NEW = "applicant:new"
EVENT_APPLICANT_WITHDRAWN = "applicant:withdrawn"
EVENT_APPLICATION_UPDATED = "application:updated"
EVENT_NOTIFICATION_NEW = "notification:new"
EVENT_ROSTER_UPDATED = "roster:updated"
EVENT_SCOUTING_NEW = "scouting:new"

ROSTER_ACTION_ADD = "add"
ROSTER_ACTION_REMOVE = "remove"

# Most recent notifications returned by the list endpoint
NOTIFICATION_PAGE_SIZE = 50
