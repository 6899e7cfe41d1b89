"""
Interface-name canonicalization used only as a join key across inventory,
rollup details and upgrade candidates. Never shown to users.
"""

# Longest vendor spellings first so e.g. "tengigabitethernet" never matches "ethernet".
_PREFIXES = sorted(
    [
        ("port-channel", "po"),
        ("portchannel", "po"),
        ("bundle-ether", "be"),
        ("bundleether", "be"),
        ("gigabitethernet", "gi"),
        ("tengigabitethernet", "te"),
        ("twentyfivegigabitethernet", "twe"),
        ("fortygigabitethernet", "fo"),
        ("hundredgigabitethernet", "hu"),
        ("tengige", "te"),
        ("twentyfivegige", "twe"),
        ("fortygige", "fo"),
        ("hundredgige", "hu"),
        ("twohundredgige", "twohu"),
        ("fourhundredgige", "fourhu"),
        ("managementethernet", "mgmt"),
        ("mgmtethernet", "mgmt"),
        ("management", "mgmt"),
        ("fastethernet", "fa"),
        ("ethernet", "eth"),
        ("loopback", "lo"),
        ("vlan", "vl"),
    ],
    key=lambda pair: len(pair[0]),
    reverse=True,
)


def normalize_iface_name(name) -> str:
    s = "".join(str(name or "").split()).lower()
    if not s:
        return ""
    # A substitution can expose another long form; repeat until stable.
    while True:
        before = s
        for long_form, short_form in _PREFIXES:
            if s.startswith(long_form):
                s = short_form + s[len(long_form):]
                break
        while s.endswith(".0"):
            s = s[:-2]
        if s == before:
            return s


def normalize_device_name(name) -> str:
    return str(name or "").strip().lower()


def iface_join_key(device, iface, direction=None) -> str:
    key = f"{normalize_device_name(device)}|{normalize_iface_name(iface)}"
    if direction is not None:
        key += f"|{str(direction).strip().upper()}"
    return key
