"""CLI for one-off nearby vehicle lookups."""

import asyncio
import json
import logging
import sys
from typing import Any

import aiohttp

from nearby_transit.adapters.config import AppConfig, SettingsLoader
from nearby_transit.adapters.system import system_memory_usage
from nearby_transit.adapters.tranzy_api import TranzyTransitRepository
from nearby_transit.application.services import (
    DegradationController,
    StationLocator,
    StationVehicleService,
)
from nearby_transit.domain.models.coordinates import Coordinates
from nearby_transit.domain.models.direction import VehicleDirection
from nearby_transit.domain.models.matched_vehicle import MatchedVehicle
from nearby_transit.domain.models.station import StationDistance
from nearby_transit.domain.models.station_vehicle_result import StationVehicleResult


def vehicle_to_dict(vehicle: MatchedVehicle) -> dict[str, Any]:
    """Serialize a matched vehicle for JSON output."""
    return {
        "id": vehicle.id,
        "label": vehicle.vehicle.label,
        "route_id": vehicle.route_id,
        "route_name": vehicle.route_name,
        "destination": vehicle.destination,
        "direction": vehicle.direction.value,
        "minutes_away": vehicle.minutes_away,
        "estimated_arrival": vehicle.estimated_arrival.isoformat(),
        "wheelchair_accessible": vehicle.vehicle.is_wheelchair_accessible,
        "bike_accessible": vehicle.vehicle.is_bike_accessible,
        "stop_sequence": [
            {
                "stop_id": entry.stop_id,
                "stop_name": entry.stop_name,
                "sequence": entry.sequence,
                "is_current": entry.is_current,
                "is_destination": entry.is_destination,
            }
            for entry in vehicle.stop_sequence
        ],
    }


def result_to_dict(result: StationVehicleResult) -> dict[str, Any]:
    """Serialize a pipeline result for JSON output."""
    return {
        "generation": result.generation,
        "confidence": result.confidence,
        "limitations": list(result.limitations),
        "degradation_level": result.degradation_level.value,
        "used_schedule_fallback": result.used_schedule_fallback,
        "stations": [
            {
                "id": group.station.station.id,
                "name": group.station.station.name,
                "distance": round(group.station.distance),
                "vehicles": [vehicle_to_dict(vehicle) for vehicle in group.vehicles],
                "all_routes": [
                    {
                        "route_id": summary.route_id,
                        "route_name": summary.route_name,
                        "vehicle_count": summary.vehicle_count,
                    }
                    for summary in group.all_routes
                ],
            }
            for group in result.groups
        ],
    }


def format_eta(vehicle: MatchedVehicle) -> str:
    """Human readable arrival state of a vehicle."""
    if vehicle.is_at_station:
        return "at station"
    if vehicle.direction is VehicleDirection.ARRIVING:
        return f"in {vehicle.minutes_away} min"
    if vehicle.direction is VehicleDirection.DEPARTING:
        return f"left {vehicle.minutes_away} min ago"
    return "unknown"


def format_result(result: StationVehicleResult) -> str:
    """Render a pipeline result as plain text."""
    if not result.groups:
        lines = ["No vehicles found near you."]
    else:
        lines = []
        for group in result.groups:
            station = group.station.station
            lines.append(f"{station.name} ({group.station.distance:.0f} m)")
            for vehicle in group.vehicles:
                lines.append(
                    f"  {vehicle.route_name:>5}  {vehicle.destination:<30} {format_eta(vehicle)}"
                )
            if group.all_routes:
                routes = ", ".join(
                    f"{summary.route_name} ({summary.vehicle_count})"
                    for summary in group.all_routes
                )
                lines.append(f"  Routes: {routes}")
            lines.append("")
    if result.limitations:
        lines.append(f"Limitations: {'; '.join(result.limitations)}")
    return "\n".join(lines).rstrip()


def format_stations(stations: list[StationDistance]) -> str:
    """Render located stations as plain text."""
    if not stations:
        return "No stations found."
    return "\n".join(
        f"{candidate.station.name} ({candidate.distance:.0f} m)\n    ID: {candidate.station.id}"
        for candidate in stations
    )


async def show_nearby(
    config: AppConfig, origin: Coordinates, favorites: list[str], format_json: bool = False
) -> None:
    """Run the pipeline once and print the result."""
    controller = DegradationController(SettingsLoader.degradation_settings(config))
    async with aiohttp.ClientSession() as session:
        repository = TranzyTransitRepository(
            session,
            config.tranzy_api_key,
            base_url=config.tranzy_base_url,
            timeout_seconds=config.api_timeout_seconds,
        )
        service = StationVehicleService(
            repository,
            controller,
            config.agency_id,
            filtering=config.filtering,
            memory_probe=system_memory_usage,
        )
        result = await service.get_station_vehicle_groups(
            origin, SettingsLoader.display_settings(config), favorites
        )

    if format_json:
        print(json.dumps(result_to_dict(result), indent=2, ensure_ascii=False))
    else:
        print(format_result(result))


async def show_stations(
    config: AppConfig, origin: Coordinates, format_json: bool = False
) -> None:
    """Print the stations within the configured search radius."""
    async with aiohttp.ClientSession() as session:
        repository = TranzyTransitRepository(
            session,
            config.tranzy_api_key,
            base_url=config.tranzy_base_url,
            timeout_seconds=config.api_timeout_seconds,
        )
        stations = await repository.get_stations(config.agency_id)

    located = StationLocator().locate(
        stations, origin, config.max_search_radius, config.max_stations_to_check
    )
    if format_json:
        data = [
            {
                "id": candidate.station.id,
                "name": candidate.station.name,
                "distance": round(candidate.distance),
            }
            for candidate in located
        ]
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(format_stations(located))


def check_config(config: AppConfig) -> None:
    """Print the effective configuration after filtering sanitation."""
    controller = DegradationController(SettingsLoader.degradation_settings(config))
    filtering = controller.handle_invalid_configuration(config.filtering)
    data = {
        "agency_id": config.agency_id,
        "location": {"latitude": config.latitude, "longitude": config.longitude},
        "display": SettingsLoader.display_settings(config).model_dump(),
        "favorites": SettingsLoader.favorite_routes(config),
        "filtering": filtering.model_dump(),
    }
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _load_config(args: Any) -> AppConfig:
    overrides: dict[str, Any] = {}
    if args.config:
        overrides["config_file"] = args.config
    config = AppConfig(**overrides).load_toml()
    cli_values: dict[str, Any] = {}
    if getattr(args, "lat", None) is not None:
        cli_values["latitude"] = args.lat
    if getattr(args, "lon", None) is not None:
        cli_values["longitude"] = args.lon
    if getattr(args, "favorites", None):
        cli_values["favorite_routes"] = args.favorites
        cli_values["filter_by_favorites"] = True
    if getattr(args, "show_all", False):
        cli_values["show_all_vehicles_per_route"] = True
    if getattr(args, "radius", None) is not None:
        cli_values["max_search_radius"] = args.radius
    if cli_values:
        config = AppConfig.model_validate({**config.model_dump(), **cli_values})
    return config


async def main() -> None:
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Nearby Transit vehicle lookup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Vehicles heading to the stations around you
  nearby-transit nearby --lat 46.7712 --lon 23.6236

  # Only your favorite routes
  nearby-transit nearby --lat 46.7712 --lon 23.6236 --favorites 24B 35

  # Stations within 1 km
  nearby-transit stations --lat 46.7712 --lon 23.6236 --radius 1000

  # Show the effective configuration
  nearby-transit check-config --config config.toml
        """,
    )
    parser.add_argument("--config", help="Path to TOML configuration file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    nearby_parser = subparsers.add_parser("nearby", help="Show vehicles near a location")
    nearby_parser.add_argument("--lat", type=float, help="Latitude")
    nearby_parser.add_argument("--lon", type=float, help="Longitude")
    nearby_parser.add_argument(
        "--favorites", nargs="+", metavar="ROUTE", help="Only show these route names"
    )
    nearby_parser.add_argument(
        "--show-all", action="store_true", help="Show every vehicle instead of the best per route"
    )
    nearby_parser.add_argument("--json", action="store_true", help="Output as JSON")

    stations_parser = subparsers.add_parser("stations", help="List stations near a location")
    stations_parser.add_argument("--lat", type=float, help="Latitude")
    stations_parser.add_argument("--lon", type=float, help="Longitude")
    stations_parser.add_argument("--radius", type=float, help="Search radius in meters")
    stations_parser.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers.add_parser("check-config", help="Show the effective configuration")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    try:
        config = _load_config(args)

        if args.command == "nearby":
            origin = SettingsLoader.origin(config)
            await show_nearby(
                config, origin, SettingsLoader.favorite_routes(config), format_json=args.json
            )

        elif args.command == "stations":
            origin = SettingsLoader.origin(config)
            await show_stations(config, origin, format_json=args.json)

        elif args.command == "check-config":
            check_config(config)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cli_main() -> None:
    """Synchronous entry point for the CLI command."""
    asyncio.run(main())


if __name__ == "__main__":
    cli_main()
