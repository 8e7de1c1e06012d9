"""
actions.py - DiRT Rally action catalog

(action id, label, category). The ids are the exact strings the game uses in
<Action id="..."> elements; labels and categories are for listing only.
"""

ACTIONS = [
    ("Steer Left", "Steer Left", "Driving"),
    ("Steer Right", "Steer Right", "Driving"),
    ("Accelerate", "Accelerate (Throttle)", "Driving"),
    ("Brake", "Brake / Reverse", "Driving"),
    ("Clutch", "Clutch", "Driving"),
    ("Handbrake", "Handbrake", "Driving"),
    ("Boost", "Boost", "Driving"),
    ("Gear Up", "Gear Up", "Gears"),
    ("Gear Down", "Gear Down", "Gears"),
    ("Gear 1", "Gear 1", "Gears"),
    ("Gear 2", "Gear 2", "Gears"),
    ("Gear 3", "Gear 3", "Gears"),
    ("Gear 4", "Gear 4", "Gears"),
    ("Gear 5", "Gear 5", "Gears"),
    ("Gear 6", "Gear 6", "Gears"),
    ("Gear 7", "Gear 7", "Gears"),
    ("Gear Reverse", "Gear Reverse", "Gears"),
    ("Change View", "Change View", "Camera"),
    ("Look Left", "Look Left", "Camera"),
    ("Look Right", "Look Right", "Camera"),
    ("Look Up", "Look Up", "Camera"),
    ("Look Down", "Look Down", "Camera"),
    ("Look Back", "Look Back", "Camera"),
    ("Cycle Forward On Board Cameras", "Cycle On-Board Cameras", "Camera"),
    ("Headlights", "Headlights", "Camera"),
    ("Wipers", "Wipers", "Camera"),
    ("Instant Replay", "Instant Replay", "Replay"),
    ("Activate Replay System", "Activate Replay", "Replay"),
    ("Replay Rewind", "Rewind", "Replay"),
    ("Replay Fast Forward", "Fast Forward", "Replay"),
    ("Replay Pause", "Pause/Play", "Replay"),
    ("Replay Next Camera", "Next Camera", "Replay"),
    ("Replay Prev Camera", "Previous Camera", "Replay"),
    ("Replay Exit", "Exit Replay", "Replay"),
    ("Replay UI On Off", "Toggle Replay UI", "Replay"),
    ("Replay Jump In", "Take Control (Jump In)", "Replay"),
    ("Replay Audio Mute", "Mute Audio", "Replay"),
    ("Replay Youtube", "Open YouTube Menu", "Replay"),
    ("Youtube Drag Left", "YouTube Drag Left", "Replay"),
    ("Youtube Drag Right", "YouTube Drag Right", "Replay"),
    ("Youtube Speed Up", "YouTube Speed Up", "Replay"),
    ("Youtube Speed Down", "YouTube Speed Down", "Replay"),
    ("Youtube Upload", "YouTube Upload", "Replay"),
    ("Youtube Exit", "YouTube Exit", "Replay"),
    ("SeatMoveForward", "Seat Forward", "Seat"),
    ("SeatMoveBackward", "Seat Backward", "Seat"),
    ("SeatMoveUp", "Seat Up", "Seat"),
    ("SeatMoveDown", "Seat Down", "Seat"),
    ("SeatTiltUp", "Seat Tilt Up", "Seat"),
    ("SeatTiltDown", "Seat Tilt Down", "Seat"),
    ("SeatReset", "Reset Seat", "Seat"),
    ("Pause", "Pause / Menu", "Menu"),
    ("Menu Up", "Menu Up", "Menu"),
    ("Menu Down", "Menu Down", "Menu"),
    ("Menu Left", "Menu Left", "Menu"),
    ("Menu Right", "Menu Right", "Menu"),
    ("Menu Select", "Menu Select (Ok)", "Menu"),
    ("Menu Back", "Menu Back (Cancel)", "Menu"),
    ("Menu Start Button", "Menu Start", "Menu"),
    ("Menu Left Shoulder", "Menu Tab Left (LB)", "Menu"),
    ("Menu Right Shoulder", "Menu Tab Right (RB)", "Menu"),
    ("Menu Button3", "Menu Button 3 (Y/Tri)", "Menu"),
    ("Menu Button4", "Menu Button 4 (X/Sqr)", "Menu"),
    ("Menu Scroll Up", "Menu Scroll Up", "Menu"),
    ("Menu Scroll Down", "Menu Scroll Down", "Menu"),
    ("Fe View Tweak Left", "Showroom Rotate Left", "Showroom"),
    ("Fe View Tweak Right", "Showroom Rotate Right", "Showroom"),
    ("Fe View Tweak Up", "Showroom Rotate Up", "Showroom"),
    ("Fe View Tweak Down", "Showroom Rotate Down", "Showroom"),
    ("Fe View Tweak In", "Showroom Zoom In", "Showroom"),
    ("Fe View Tweak Out", "Showroom Zoom Out", "Showroom"),
    ("Reset Vehicle", "Recover Vehicle", "Driving"),
    ("Horn", "Horn", "Driving"),
    ("Push To Speak", "Push To Speak", "Misc"),
    ("VRSensorReset", "Reset VR Sensor", "Misc"),
    ("SeparationInc", "3D Separation Inc", "Misc"),
    ("SeparationDec", "3D Separation Dec", "Misc"),
    ("ViewPlaneInc", "3D View Plane Inc", "Misc"),
    ("ViewPlaneDec", "3D View Plane Dec", "Misc"),
    ("Spectator Next Camera", "Spectator Next Camera", "Spectator"),
    ("Spectator Previous Camera", "Spectator Prev Camera", "Spectator"),
    ("Spectator UI On Off", "Toggle Spectator UI", "Spectator"),
    ("Spectator List On Off", "Toggle Spectator List", "Spectator"),
]

ACTION_IDS = frozenset(a[0] for a in ACTIONS)


def label_for(action_id: str) -> str:
    for aid, label, _ in ACTIONS:
        if aid == action_id:
            return label
    return action_id


def by_category() -> dict:
    """Group actions by category, keeping catalog order."""
    groups = {}
    for aid, label, category in ACTIONS:
        groups.setdefault(category, []).append((aid, label))
    return groups
