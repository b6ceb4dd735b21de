from enum import Enum


class RouteMode(str, Enum):
    DRIVING = "driving"
    WALKING = "walking"
    CYCLING = "cycling"


class RoutingTier(str, Enum):
    OSRM = "osrm"
    GOOGLE = "google"
    STRAIGHT_LINE = "straight_line"
