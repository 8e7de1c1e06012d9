#!/usr/bin/env python3
"""
main.py - Entry point for rallymap (DiRT Rally input mapper)

Every command restores the autosaved workspace first and saves it again
afterwards, so a binding session can be spread over several invocations:

    rallymap devices
    rallymap select "{C24F046D-0000-0000-0000-504944564944}"
    rallymap bind "Steer Left"
    rallymap export-xml custom_input.xml
"""

import argparse
import logging
import signal
import sys
import time
from pathlib import Path

from rallymap.controller.actions import ACTION_IDS, by_category, label_for
from rallymap.controller.bindings import CALIBRATION_TYPES
from rallymap.controller.devices import DeviceWatcher
from rallymap.controller.gamecontroller import PygameGamepadSource, input_level
from rallymap.controller.workspace import Workspace
from rallymap.errors import NoCandidateDevices, RallymapError
from rallymap.file.blobstore import DirectoryBlobStore
from rallymap.file.inireader import AppConfig, IniReader
from rallymap.logger.logger import setup_logger

DEFAULT_CONFIG_FILE = "rallymap.ini"


# ----------------------------------------------------------------------
# Config selector
# ----------------------------------------------------------------------
def select_config_file(explicit: str | None):
    if explicit:
        if not Path(explicit).exists():
            raise SystemExit(f"Config file not found: {explicit}")
        return explicit
    if Path(DEFAULT_CONFIG_FILE).exists():
        return DEFAULT_CONFIG_FILE
    return None


# ----------------------------------------------------------------------
# Live devices
# ----------------------------------------------------------------------
def connect_devices(ws: Workspace, cfg: AppConfig, log):
    source = PygameGamepadSource(log)
    watcher = DeviceWatcher(source, interval=cfg.poll_interval, log=log)
    devices = watcher.poll()
    ws.update_devices(devices or [])
    return source, watcher


def print_devices(ws: Workspace):
    devices = ws.sorted_devices()
    if not devices:
        print("No controllers connected.")
        return
    for prio, d in enumerate(devices):
        mark = "*" if d.guid in ws.selected_guids else " "
        print(f"{mark} [{prio}] {d.name}")
        print(f"      GUID={d.guid} VID={d.vid} PID={d.pid} "
              f"Axes={d.axes_count} Buttons={d.buttons_count} (slot {d.index})")


def print_mappings(ws: Workspace):
    if not len(ws.mappings):
        print("No bindings yet.")
        return
    for action_id, entries in ws.mappings.items():
        print(f"{label_for(action_id)} [{action_id}]")
        for pos, m in enumerate(entries):
            what = f"{m.type} {m.index}" + (f" {m.direction}" if m.direction else "")
            print(f"  {pos}: {m.device_name} {what} "
                  f"calibration={m.calibration or '-'} deadzone={m.deadzone} saturation={m.saturation}")


def check_action(action_id: str, log) -> bool:
    if action_id not in ACTION_IDS:
        log.error(f"[BINDINGS] '{action_id}' is not a DiRT Rally action (see 'actions')")
        return False
    return True


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
def cmd_devices(ws, cfg, args, log):
    connect_devices(ws, cfg, log)
    print_devices(ws)


def cmd_actions(ws, cfg, args, log):
    for category, actions in by_category().items():
        print(category)
        for aid, label in actions:
            bound = len(ws.mappings.get(aid))
            print(f"  {label:<28} [{aid}]" + (f"  ({bound} bound)" if bound else ""))


def cmd_select(ws, cfg, args, log):
    active = ws.toggle_device(args.guid)
    log.info(f"[DEVICE] {args.guid} {'selected' if active else 'deselected'}")


def cmd_move(ws, cfg, args, log):
    connect_devices(ws, cfg, log)
    if not ws.move_device(args.guid, args.direction):
        log.warning(f"[DEVICE] Cannot move {args.guid} {args.direction}")
    print_devices(ws)


def cmd_bind(ws, cfg, args, log):
    if not check_action(args.action, log):
        return 1
    source, watcher = connect_devices(ws, cfg, log)

    def on_frame(_session):
        devices = watcher.poll()
        if devices is not None:
            ws.update_devices(devices)

    # Ctrl+C cancels the detection instead of killing the process
    previous = signal.signal(signal.SIGINT, lambda *_: ws.cancel_binding())
    try:
        print(f"Press a button or move an axis for '{label_for(args.action)}' (Ctrl+C to cancel)...")
        mapping = ws.bind(args.action, source, cfg.frame_interval, on_frame=on_frame)
    finally:
        signal.signal(signal.SIGINT, previous)
    if mapping is None:
        return 1
    print_mappings(ws)
    return 0


def cmd_unbind(ws, cfg, args, log):
    if not ws.mappings.remove_binding(args.action, args.position):
        return 1


def cmd_set(ws, cfg, args, log):
    changes = {}
    if args.calibration is not None:
        changes["calibration"] = args.calibration
    if args.deadzone is not None:
        changes["deadzone"] = args.deadzone
    if args.saturation is not None:
        changes["saturation"] = args.saturation
    if not changes:
        log.warning("Nothing to change (use --calibration, --deadzone or --saturation)")
        return 1
    if not ws.mappings.update_binding(args.action, args.position, **changes):
        return 1
    print_mappings(ws)


def cmd_show(ws, cfg, args, log):
    print_mappings(ws)


def cmd_monitor(ws, cfg, args, log):
    source, watcher = connect_devices(ws, cfg, log)
    bound = [(a, m) for a, entries in ws.mappings.items() for m in entries]
    if not bound:
        print("No bindings to monitor.")
        return
    try:
        while True:
            devices = watcher.poll()
            if devices is not None:
                ws.update_devices(devices)
                bound = [(a, m) for a, entries in ws.mappings.items() for m in entries]
            pads = source.snapshot()
            line = "  ".join(
                f"{a}:{int(input_level(m, pads) * 100):3d}%" for a, m in bound
            )
            print("\r" + line, end="", flush=True)
            time.sleep(0.1)
    except KeyboardInterrupt:
        print()


def cmd_export_xml(ws, cfg, args, log):
    Path(args.file).write_text(ws.export_xml(), encoding="utf-8")
    log.info(f"[XML] Wrote {args.file}")


def cmd_import_xml(ws, cfg, args, log):
    ws.import_xml(Path(args.file).read_text(encoding="utf-8"))
    print_mappings(ws)


def cmd_export_json(ws, cfg, args, log):
    Path(args.file).write_text(ws.export_json(), encoding="utf-8")
    log.info(f"[JSON] Wrote {args.file}")


def cmd_import_json(ws, cfg, args, log):
    ws.import_json(Path(args.file).read_text(encoding="utf-8"))
    print_mappings(ws)


def build_parser():
    parser = argparse.ArgumentParser(description="DiRT Rally input mapper")
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help=f"INI config file (default: {DEFAULT_CONFIG_FILE} if present)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("devices", help="list connected controllers").set_defaults(func=cmd_devices)
    sub.add_parser("actions", help="list bindable actions").set_defaults(func=cmd_actions)

    p = sub.add_parser("select", help="toggle a device as active for binding")
    p.add_argument("guid")
    p.set_defaults(func=cmd_select)

    p = sub.add_parser("move", help="change a device's priority")
    p.add_argument("guid")
    p.add_argument("direction", choices=["up", "down"])
    p.set_defaults(func=cmd_move)

    p = sub.add_parser("bind", help="listen for an input and bind it to an action")
    p.add_argument("action")
    p.set_defaults(func=cmd_bind)

    p = sub.add_parser("unbind", help="remove one binding of an action")
    p.add_argument("action")
    p.add_argument("position", type=int)
    p.set_defaults(func=cmd_unbind)

    p = sub.add_parser("set", help="change calibration/deadzone/saturation of a binding")
    p.add_argument("action")
    p.add_argument("position", type=int)
    p.add_argument("--calibration", choices=CALIBRATION_TYPES)
    p.add_argument("--deadzone", type=float)
    p.add_argument("--saturation", type=float)
    p.set_defaults(func=cmd_set)

    sub.add_parser("show", help="list all bindings").set_defaults(func=cmd_show)
    sub.add_parser("monitor", help="live readout of bound inputs").set_defaults(func=cmd_monitor)

    for name, func, what in (
        ("export-xml", cmd_export_xml, "write the DiRT Rally input XML"),
        ("import-xml", cmd_import_xml, "replace bindings from a DiRT Rally input XML"),
        ("export-json", cmd_export_json, "write a project JSON file"),
        ("import-json", cmd_import_json, "load a project JSON file"),
    ):
        p = sub.add_parser(name, help=what)
        p.add_argument("file")
        p.set_defaults(func=func)

    return parser


# ----------------------------------------------------------------------
# Main runner
# ----------------------------------------------------------------------
def run_main(args, cfg: AppConfig, log) -> int:
    store = DirectoryBlobStore(cfg.storage_dir, log=log)
    ws = Workspace(log)
    ws.restore(store, cfg.storage_key)
    try:
        rc = args.func(ws, cfg, args, log) or 0
    except NoCandidateDevices as e:
        log.warning(f"{e} (use 'select GUID' first)")
        return 1
    except RallymapError as e:
        log.error(str(e))
        return 1
    ws.save(store, cfg.storage_key)
    return rc


def main(argv=None):
    args = build_parser().parse_args(argv)

    cfgfile = select_config_file(args.config)
    cfg = AppConfig.from_ini(IniReader(cfgfile)) if cfgfile else AppConfig()

    log = setup_logger(
        "rallymap",
        logfile=cfg.logfile or None,
        console_level=logging.DEBUG if cfg.debug else logging.INFO,
        color_console=cfg.color,
    )
    log.debug(f"[CONFIG] Using {cfgfile or 'built-in defaults'}")
    return run_main(args, cfg, log)


if __name__ == "__main__":
    sys.exit(main())
