from __future__ import annotations

import abc
import itertools
import logging
import math
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from heritage_routing.core.config import Settings, get_settings
from heritage_routing.core.enums import RouteMode, RoutingTier
from heritage_routing.core.exceptions import RouteUnavailableError
from heritage_routing.services.geodesy import Coordinate, distance_km
from heritage_routing.services.polyline import decode_polyline

logger = logging.getLogger(__name__)

DEFAULT_AVERAGE_SPEED_KMH = 50.0
MIN_FALLBACK_STEPS = 5
MAX_FALLBACK_STEPS = 20

# Candidates under an hour and under 50 km earn a bonus; longer ones saturate at zero.
SCORE_DURATION_CAP_SEC = 3600
SCORE_DISTANCE_CAP_M = 50_000


@dataclass(frozen=True, slots=True)
class RoutingRequest:
    origin: Coordinate
    destination: Coordinate
    mode: RouteMode = RouteMode.DRIVING
    allow_fallback: bool = True


@dataclass(frozen=True, slots=True)
class RouteResult:
    distance_km: float
    duration_min: float
    geometry: tuple[Coordinate, ...] = ()
    is_fallback: bool = False
    summary: str | None = None
    tier: RoutingTier | None = None

    def __post_init__(self) -> None:
        if self.distance_km < 0:
            raise ValueError("distance_km must be non-negative")
        if len(self.geometry) == 1:
            raise ValueError("geometry must hold at least two points when non-empty")

    @property
    def has_geometry(self) -> bool:
        return bool(self.geometry)

    def geometry_latlon(self) -> list[list[float]]:
        return [point.as_latlon() for point in self.geometry]


def _line_or_empty(points: Sequence[Coordinate]) -> tuple[Coordinate, ...]:
    # A single point cannot be drawn as a line; report it as "no geometry".
    if len(points) < 2:
        return ()
    return tuple(points)


def _safe_float(value: Any) -> float | None:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def _lonlat_to_coordinates(raw: Any) -> list[Coordinate]:
    """Convert GeoJSON ``[lon, lat]`` pairs, skipping anything malformed."""
    if not isinstance(raw, list):
        return []
    points: list[Coordinate] = []
    for pair in raw:
        if not isinstance(pair, (list, tuple)) or len(pair) < 2:
            continue
        lon = _safe_float(pair[0])
        lat = _safe_float(pair[1])
        if lon is None or lat is None:
            continue
        points.append(Coordinate(latitude=lat, longitude=lon))
    return points


def _latlng_object(raw: Any) -> Coordinate | None:
    if not isinstance(raw, dict):
        return None
    lat = _safe_float(raw.get("lat"))
    lng = _safe_float(raw.get("lng"))
    if lat is None or lng is None:
        return None
    return Coordinate(latitude=lat, longitude=lng)


def fallback_step_count(route_distance_km: float) -> int:
    if not math.isfinite(route_distance_km):
        return MIN_FALLBACK_STEPS
    return max(MIN_FALLBACK_STEPS, min(MAX_FALLBACK_STEPS, round(route_distance_km * 2)))


def straight_line_route(
    origin: Coordinate,
    destination: Coordinate,
    average_speed_kmh: float = DEFAULT_AVERAGE_SPEED_KMH,
) -> RouteResult:
    """Interpolated origin->destination line used when no network route exists."""
    direct = distance_km(origin, destination)
    duration = direct / average_speed_kmh * 60
    steps = fallback_step_count(direct)

    d_lat = destination.latitude - origin.latitude
    d_lon = destination.longitude - origin.longitude
    points = [
        Coordinate(latitude=origin.latitude + d_lat * (i / steps), longitude=origin.longitude + d_lon * (i / steps))
        for i in range(steps)
    ]
    # Pin the last point so the line ends exactly on the destination.
    points.append(destination)

    return RouteResult(
        distance_km=round(direct, 1),
        duration_min=round(duration) if math.isfinite(duration) else duration,
        geometry=tuple(points),
        is_fallback=True,
        summary=f"{direct:.1f}km direct route",
        tier=RoutingTier.STRAIGHT_LINE,
    )


class RouteProvider(abc.ABC):
    tier: RoutingTier

    def __init__(self, fallback: "StraightLineRouteProvider | None" = None) -> None:
        self._fallback = fallback

    @abc.abstractmethod
    async def attempt_route(self, request: RoutingRequest) -> RouteResult | None:
        """Return a route, or None when this provider cannot produce one."""
        raise NotImplementedError

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: RouteMode = RouteMode.DRIVING,
        allow_fallback: bool = True,
    ) -> RouteResult | None:
        request = RoutingRequest(origin=origin, destination=destination, mode=mode, allow_fallback=allow_fallback)
        route = await self.attempt_route(request)
        if route is not None:
            return route
        if not allow_fallback:
            return None
        logger.info("Using straight line fallback", extra={"provider": self.tier.value, "mode": mode.value})
        fallback = self._fallback or StraightLineRouteProvider()
        return fallback.straight_line_route(origin, destination)


class StraightLineRouteProvider(RouteProvider):
    tier = RoutingTier.STRAIGHT_LINE

    def __init__(self, average_speed_kmh: float = DEFAULT_AVERAGE_SPEED_KMH) -> None:
        super().__init__(fallback=None)
        self.average_speed_kmh = average_speed_kmh

    def straight_line_route(self, origin: Coordinate, destination: Coordinate) -> RouteResult:
        return straight_line_route(origin, destination, self.average_speed_kmh)

    async def attempt_route(self, request: RoutingRequest) -> RouteResult:
        return self.straight_line_route(request.origin, request.destination)


class HttpRouteProvider(RouteProvider):
    def __init__(
        self,
        *,
        timeout_sec: float | None = None,
        user_agent: str = "SriHeritageApp/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
        fallback: StraightLineRouteProvider | None = None,
    ) -> None:
        super().__init__(fallback=fallback)
        self.timeout_sec = timeout_sec
        self.user_agent = user_agent
        self._transport = transport

    async def _get_json(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        headers = {"Accept": "application/json", "User-Agent": self.user_agent}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self._transport) as client:
                response = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise RouteUnavailableError(self.tier.value, RouteUnavailableError.TRANSPORT, str(exc)) from exc

        if not response.is_success:
            raise RouteUnavailableError(
                self.tier.value,
                RouteUnavailableError.HTTP_STATUS,
                f"{response.status_code} {response.text[:200]}",
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise RouteUnavailableError(self.tier.value, RouteUnavailableError.SERVICE_STATUS, "invalid JSON body") from exc
        if not isinstance(payload, dict):
            raise RouteUnavailableError(self.tier.value, RouteUnavailableError.SERVICE_STATUS, "unexpected body")
        return payload

    @abc.abstractmethod
    async def _route(self, request: RoutingRequest) -> RouteResult:
        raise NotImplementedError

    async def attempt_route(self, request: RoutingRequest) -> RouteResult | None:
        try:
            return await self._route(request)
        except RouteUnavailableError as exc:
            logger.warning(
                "Route request failed",
                extra={
                    "provider": self.tier.value,
                    "reason": exc.reason,
                    "mode": request.mode.value,
                    "error": exc.detail,
                },
            )
            return None


class OsrmRouteProvider(HttpRouteProvider):
    """Open Source Routing Machine over OpenStreetMap data; no key required."""

    tier = RoutingTier.OSRM

    def __init__(self, base_url: str = "https://router.project-osrm.org", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._base_url = base_url.rstrip("/")

    @staticmethod
    def _profile(mode: RouteMode) -> str:
        mapping = {
            RouteMode.DRIVING: "driving",
            RouteMode.WALKING: "foot",
            RouteMode.CYCLING: "cycling",
        }
        return mapping.get(mode, "driving")

    def build_url(self, request: RoutingRequest) -> str:
        # OSRM takes lon,lat pairs.
        origin = f"{request.origin.longitude},{request.origin.latitude}"
        destination = f"{request.destination.longitude},{request.destination.latitude}"
        return f"{self._base_url}/route/v1/{self._profile(request.mode)}/{origin};{destination}"

    async def _route(self, request: RoutingRequest) -> RouteResult:
        payload = await self._get_json(self.build_url(request), params={"overview": "full", "geometries": "geojson"})

        code = payload.get("code")
        if code != "Ok":
            raise RouteUnavailableError(
                self.tier.value,
                RouteUnavailableError.SERVICE_STATUS,
                f"{code}: {payload.get('message', '')}",
            )
        routes = payload.get("routes")
        if not isinstance(routes, list) or not routes or not isinstance(routes[0], dict):
            raise RouteUnavailableError(self.tier.value, RouteUnavailableError.NO_ROUTES)
        return self.process_route(routes[0])

    @staticmethod
    def extract_geometry(route: dict[str, Any]) -> list[Coordinate]:
        geometry = route.get("geometry")
        points = _lonlat_to_coordinates(geometry.get("coordinates")) if isinstance(geometry, dict) else []
        if points:
            return points

        # Per-step geometries, concatenated in order; shared boundary points stay duplicated.
        legs = route.get("legs")
        if not isinstance(legs, list):
            return []
        for leg in legs:
            steps = leg.get("steps") if isinstance(leg, dict) else None
            if not isinstance(steps, list):
                continue
            for step in steps:
                step_geometry = step.get("geometry") if isinstance(step, dict) else None
                if isinstance(step_geometry, dict):
                    points.extend(_lonlat_to_coordinates(step_geometry.get("coordinates")))
        return points

    def process_route(self, route: dict[str, Any]) -> RouteResult:
        route_km = (_safe_float(route.get("distance")) or 0.0) / 1000
        route_min = (_safe_float(route.get("duration")) or 0.0) / 60

        legs = route.get("legs")
        first_leg = legs[0] if isinstance(legs, list) and legs and isinstance(legs[0], dict) else {}
        summary = first_leg.get("summary") or f"{route_km:.1f}km route"

        return RouteResult(
            distance_km=round(max(route_km, 0.0), 1),
            duration_min=round(max(route_min, 0.0)),
            geometry=_line_or_empty(self.extract_geometry(route)),
            is_fallback=False,
            summary=summary,
            tier=self.tier,
        )


class GoogleDirectionsRouteProvider(HttpRouteProvider):
    tier = RoutingTier.GOOGLE

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://maps.googleapis.com/maps/api/directions/json",
        region: str = "LK",
        language: str = "en",
        avoid_tolls: bool = False,
        avoid_highways: bool = False,
        prefer_main_roads: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self._base_url = base_url
        self.region = region
        self.language = language
        self.avoid_tolls = avoid_tolls
        self.avoid_highways = avoid_highways
        self.prefer_main_roads = prefer_main_roads

    @staticmethod
    def _travel_mode(mode: RouteMode) -> str:
        mapping = {
            RouteMode.DRIVING: "driving",
            RouteMode.WALKING: "walking",
            RouteMode.CYCLING: "bicycling",
        }
        return mapping.get(mode, "driving")

    def build_params(self, request: RoutingRequest) -> dict[str, str]:
        params = {
            "origin": f"{request.origin.latitude},{request.origin.longitude}",
            "destination": f"{request.destination.latitude},{request.destination.longitude}",
            "mode": self._travel_mode(request.mode),
            "key": self.api_key,
            "region": self.region,
            "language": self.language,
            "alternatives": "true",
        }
        avoid = [name for name, enabled in (("tolls", self.avoid_tolls), ("highways", self.avoid_highways)) if enabled]
        if avoid:
            params["avoid"] = "|".join(avoid)
        return params

    async def _candidate_routes(self, request: RoutingRequest) -> list[dict[str, Any]]:
        payload = await self._get_json(self._base_url, params=self.build_params(request))

        status = payload.get("status")
        if status != "OK":
            raise RouteUnavailableError(
                self.tier.value,
                RouteUnavailableError.SERVICE_STATUS,
                f"{status}: {payload.get('error_message', '')}",
            )
        routes = payload.get("routes")
        candidates = [route for route in routes if isinstance(route, dict)] if isinstance(routes, list) else []
        if not candidates:
            raise RouteUnavailableError(self.tier.value, RouteUnavailableError.NO_ROUTES)
        return candidates

    async def _route(self, request: RoutingRequest) -> RouteResult:
        candidates = await self._candidate_routes(request)
        return self.process_route(self.select_best_route(candidates))

    async def get_route_alternatives(self, request: RoutingRequest) -> list[RouteResult]:
        try:
            candidates = await self._candidate_routes(request)
        except RouteUnavailableError as exc:
            logger.warning(
                "Route alternatives request failed",
                extra={"provider": self.tier.value, "reason": exc.reason, "error": exc.detail},
            )
            return []
        return [self.process_route(route) for route in candidates]

    @staticmethod
    def _leg_totals(route: dict[str, Any]) -> tuple[float, float]:
        """Sum of leg distances (m) and durations (s)."""
        meters = 0.0
        seconds = 0.0
        legs = route.get("legs")
        if not isinstance(legs, list):
            return meters, seconds
        for leg in legs:
            if not isinstance(leg, dict):
                continue
            distance = leg.get("distance")
            duration = leg.get("duration")
            meters += (_safe_float(distance.get("value")) if isinstance(distance, dict) else None) or 0.0
            seconds += (_safe_float(duration.get("value")) if isinstance(duration, dict) else None) or 0.0
        return meters, seconds

    @classmethod
    def score_route(cls, route: dict[str, Any]) -> float:
        meters, seconds = cls._leg_totals(route)
        return max(0.0, SCORE_DURATION_CAP_SEC - seconds) + max(0.0, SCORE_DISTANCE_CAP_M - meters)

    def select_best_route(self, routes: list[dict[str, Any]]) -> dict[str, Any]:
        if not self.prefer_main_roads:
            return routes[0]
        # Ties keep the earlier candidate.
        best = routes[0]
        best_score = self.score_route(best)
        for route in routes[1:]:
            score = self.score_route(route)
            if score > best_score:
                best, best_score = route, score
        return best

    def extract_geometry(self, route: dict[str, Any]) -> list[Coordinate]:
        overview = route.get("overview_polyline")
        encoded = overview.get("points") if isinstance(overview, dict) else None
        if isinstance(encoded, str) and encoded:
            try:
                points = decode_polyline(encoded)
            except ValueError as exc:
                logger.warning("Overview polyline is malformed", extra={"provider": self.tier.value, "error": str(exc)})
                points = []
            if points:
                return points

        # Step-by-step: start point, the step's own polyline, end point. Not de-duplicated.
        points = []
        legs = route.get("legs")
        if not isinstance(legs, list):
            return points
        for leg in legs:
            steps = leg.get("steps") if isinstance(leg, dict) else None
            if not isinstance(steps, list):
                continue
            for step in steps:
                if not isinstance(step, dict):
                    continue
                start = _latlng_object(step.get("start_location"))
                if start is not None:
                    points.append(start)
                step_polyline = step.get("polyline")
                step_encoded = step_polyline.get("points") if isinstance(step_polyline, dict) else None
                if isinstance(step_encoded, str) and step_encoded:
                    try:
                        points.extend(decode_polyline(step_encoded))
                    except ValueError as exc:
                        logger.warning("Step polyline is malformed", extra={"provider": self.tier.value, "error": str(exc)})
                end = _latlng_object(step.get("end_location"))
                if end is not None:
                    points.append(end)
        return points

    def process_route(self, route: dict[str, Any]) -> RouteResult:
        meters, seconds = self._leg_totals(route)
        legs = route.get("legs")
        first_leg = legs[0] if isinstance(legs, list) and legs and isinstance(legs[0], dict) else {}
        return RouteResult(
            distance_km=max(meters, 0.0) / 1000,
            duration_min=max(seconds, 0.0) / 60,
            geometry=_line_or_empty(self.extract_geometry(route)),
            is_fallback=False,
            summary=route.get("summary") or first_leg.get("summary") or None,
            tier=self.tier,
        )


class RouteService:
    """Ordered provider chain; the straight line always closes it."""

    def __init__(
        self,
        providers: Sequence[RouteProvider],
        fallback: StraightLineRouteProvider | None = None,
        *,
        probe_origin: Coordinate = Coordinate(latitude=6.9271, longitude=79.8612),
        probe_destination: Coordinate = Coordinate(latitude=6.9319, longitude=79.8478),
    ) -> None:
        self._providers: list[RouteProvider] = [
            provider for provider in providers if not isinstance(provider, StraightLineRouteProvider)
        ]
        self.fallback = fallback or StraightLineRouteProvider()
        self.probe_origin = probe_origin
        self.probe_destination = probe_destination

    @property
    def providers(self) -> list[RouteProvider]:
        return list(self._providers)

    def provider_for(self, tier: RoutingTier) -> RouteProvider | None:
        if tier == RoutingTier.STRAIGHT_LINE:
            return self.fallback
        for provider in self._providers:
            if provider.tier == tier:
                return provider
        return None

    async def attempt_network_route(self, request: RoutingRequest) -> RouteResult | None:
        for index, provider in enumerate(self._providers):
            try:
                route = await provider.attempt_route(request)
            except Exception as exc:
                # Providers should not raise; keep walking the chain if one does.
                logger.exception(
                    "Route provider raised unexpectedly",
                    extra={"provider": provider.tier.value, "mode": request.mode.value, "error": str(exc)},
                )
                route = None
            if route is not None:
                return route
            if index + 1 < len(self._providers):
                logger.info(
                    "Route provider returned nothing, trying next",
                    extra={"provider": provider.tier.value, "next_provider": self._providers[index + 1].tier.value},
                )
        return None

    async def route_request(self, request: RoutingRequest) -> RouteResult | None:
        route = await self.attempt_network_route(request)
        if route is not None:
            return route
        if not request.allow_fallback:
            return None
        logger.info("All network providers failed, using straight line", extra={"mode": request.mode.value})
        return self.fallback.straight_line_route(request.origin, request.destination)

    async def get_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: RouteMode = RouteMode.DRIVING,
        allow_fallback: bool = True,
    ) -> RouteResult | None:
        request = RoutingRequest(origin=origin, destination=destination, mode=mode, allow_fallback=allow_fallback)
        return await self.route_request(request)

    async def get_route_via(
        self,
        tier: RoutingTier,
        origin: Coordinate,
        destination: Coordinate,
        mode: RouteMode = RouteMode.DRIVING,
        allow_fallback: bool = True,
    ) -> RouteResult | None:
        provider = self.provider_for(tier)
        if provider is None:
            if not allow_fallback:
                return None
            return self.fallback.straight_line_route(origin, destination)
        return await provider.get_route(origin, destination, mode, allow_fallback)

    async def get_road_distance(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: RouteMode = RouteMode.DRIVING,
        allow_fallback: bool = True,
    ) -> float | None:
        route = await self.get_route(origin, destination, mode, allow_fallback)
        return route.distance_km if route else None

    async def get_travel_time(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: RouteMode = RouteMode.DRIVING,
    ) -> float | None:
        route = await self.get_route(origin, destination, mode)
        return route.duration_min if route else None

    async def get_route_alternatives(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: RouteMode = RouteMode.DRIVING,
    ) -> list[RouteResult]:
        """Every network candidate we can get, then the straight line."""
        request = RoutingRequest(origin=origin, destination=destination, mode=mode, allow_fallback=False)
        routes: list[RouteResult] = []
        for provider in self._providers:
            try:
                if isinstance(provider, GoogleDirectionsRouteProvider):
                    routes.extend(await provider.get_route_alternatives(request))
                    continue
                route = await provider.attempt_route(request)
            except Exception as exc:
                logger.exception(
                    "Route provider raised unexpectedly",
                    extra={"provider": provider.tier.value, "mode": mode.value, "error": str(exc)},
                )
                continue
            if route is not None:
                routes.append(route)
        routes.append(self.fallback.straight_line_route(origin, destination))
        return routes

    async def test_connectivity(self) -> dict[RoutingTier, bool]:
        results: dict[RoutingTier, bool] = {}
        for provider in self._providers:
            try:
                route = await provider.get_route(self.probe_origin, self.probe_destination, allow_fallback=False)
            except Exception as exc:
                logger.exception(
                    "Connectivity probe raised unexpectedly",
                    extra={"provider": provider.tier.value, "error": str(exc)},
                )
                route = None
            results[provider.tier] = route is not None and not route.is_fallback
        return results

    async def is_network_available(self) -> bool:
        return any((await self.test_connectivity()).values())


class DirectionsSession:
    """One screen's stream of "show directions" requests.

    Every request takes the next sequence number; a response that arrives
    after a newer request was issued is dropped and reported as None.
    """

    def __init__(self, route_service: RouteService) -> None:
        self.route_service = route_service
        self._counter = itertools.count(1)
        self._latest = 0

    @property
    def latest_sequence(self) -> int:
        return self._latest

    def is_current(self, sequence: int) -> bool:
        return sequence == self._latest

    async def request_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: RouteMode = RouteMode.DRIVING,
    ) -> RouteResult | None:
        sequence = next(self._counter)
        self._latest = sequence
        route = await self.route_service.get_route(origin, destination, mode, allow_fallback=True)
        if not self.is_current(sequence):
            logger.info(
                "Discarding stale directions response",
                extra={"sequence": sequence, "latest_sequence": self._latest},
            )
            return None
        return route


def build_route_service(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RouteService:
    settings = settings or get_settings()
    fallback = StraightLineRouteProvider(average_speed_kmh=settings.fallback_average_speed_kmh)
    http_options: dict[str, Any] = {
        "timeout_sec": settings.route_request_timeout_sec,
        "user_agent": settings.routing_user_agent,
        "transport": transport,
        "fallback": fallback,
    }

    providers: list[RouteProvider] = [OsrmRouteProvider(base_url=settings.osrm_base_url, **http_options)]
    if settings.google_maps_api_key:
        providers.append(
            GoogleDirectionsRouteProvider(
                api_key=settings.google_maps_api_key,
                base_url=settings.google_directions_url,
                region=settings.directions_region,
                language=settings.directions_language,
                avoid_tolls=settings.directions_avoid_tolls,
                avoid_highways=settings.directions_avoid_highways,
                prefer_main_roads=settings.directions_prefer_main_roads,
                **http_options,
            )
        )

    probe_origin = Coordinate(*settings.connectivity_probe_origin)
    probe_destination = Coordinate(*settings.connectivity_probe_destination)
    return RouteService(providers, fallback, probe_origin=probe_origin, probe_destination=probe_destination)
