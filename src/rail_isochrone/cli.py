#!/usr/bin/env python3
"""Command-line interface for the rail isochrone engine."""

import logging
from typing import Optional

from .config import CITIES, DEBUG, GRAPH_SOURCE, STATIONS_SOURCE, load_settings
from .data_loader import DataLoadError, load_network
from .isochrone import IsochroneResult, IsochroneService
from .stations import find_station

SETTING_COMMANDS = {
    "/max": "max_minutes",
    "/step": "step_minutes",
}


def print_banner():
    """Print the welcome banner."""
    print("""
╔═══════════════════════════════════════════════════════════╗
║              Rail Isochrone 🚆                            ║
║                                                           ║
║  Enter an origin to see which stations you can reach.    ║
║                                                           ║
║  Examples:                                                ║
║    - 141.3505, 43.0687     (lon, lat)                    ║
║    - sapporo               (city preset)                 ║
║    - Odori                 (station name)                ║
║                                                           ║
║  Commands:                                                ║
║    /max N   - Set the travel time budget (minutes)       ║
║    /step N  - Set the time step (minutes)                ║
║    /quit    - Exit the program                           ║
╚═══════════════════════════════════════════════════════════╝
""")


def parse_origin(text: str, service: IsochroneService) -> Optional[tuple[float, float]]:
    """Origin from "lon, lat", a city preset or a station name."""
    parts = text.replace(",", " ").split()
    if len(parts) == 2:
        try:
            return float(parts[0]), float(parts[1])
        except ValueError:
            pass

    city = CITIES.get(text.lower())
    if city:
        return city[1], city[2]

    station = find_station(text, service.stations)
    if station and station.has_coordinates:
        return station.lon, station.lat
    return None


def parse_setting_command(text: str) -> Optional[tuple[str, float]]:
    """(setting, value) for "/max N" or "/step N"; None for any other command."""
    command, _, value = text.strip().partition(" ")
    key = SETTING_COMMANDS.get(command.lower())
    if key is None:
        return None
    return key, float(value)


def print_result(result: IsochroneResult):
    """Print reachable stations sorted by travel time."""
    if result.isolated:
        print("\nNo station within walking range; showing the origin only.")
        return
    if result.origin_only:
        print(f"\nNo station reachable within {result.settings.max_minutes:g} min; "
              "showing the origin only.")
        return

    print(f"\nReachable stations: {len(result.records)} "
          f"(budget {result.settings.max_minutes:g} min, step {result.settings.step_minutes:g} min)")
    for record in result.records:
        name = record.station_name or "(unnamed)"
        line = f" [{record.line}]" if record.line else ""
        print(f"  {record.time_minutes:6.1f} min  #{record.time_step:<3} {name}{line}")


def main():
    """Run the interactive isochrone prompt."""
    logging.basicConfig(level=logging.DEBUG if DEBUG else logging.WARNING)
    print_banner()

    try:
        graph, stations = load_network(GRAPH_SOURCE, STATIONS_SOURCE)
    except DataLoadError as e:
        print(f"[Error: {e}]")
        return 1

    service = IsochroneService(graph, stations, load_settings())
    overrides = {}

    while True:
        try:
            user_input = input("\nOrigin: ").strip()

            if not user_input:
                continue

            # Handle commands
            if user_input.lower() in ["/quit", "/exit", "/q"]:
                print("\nGoodbye! 🚆")
                break

            if user_input.startswith("/"):
                setting = parse_setting_command(user_input)
                if setting is None:
                    print(f"\nUnknown command: {user_input.split()[0]}")
                    continue
                key, value = setting
                overrides[key] = value
                service.settings.with_overrides(**overrides)
                print(f"\n[{key} set to {overrides[key]:g}]")
                continue

            origin = parse_origin(user_input, service)
            if origin is None:
                print(f"\nCould not understand origin: {user_input}")
                continue

            print_result(service.compute(origin, **overrides))

        except KeyboardInterrupt:
            print("\n\nGoodbye! 🚆")
            break
        except ValueError as e:
            overrides.clear()
            print(f"\n[Error: {e}]")
            print("Settings were reset. Please try again or type /quit to exit.")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
