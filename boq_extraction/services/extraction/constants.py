"""Static lookup tables for BOQ extraction.

All tables are immutable; components receive them at construction so tests
can inject alternatives.
"""

import re
from types import MappingProxyType

SHEET_MARKER = "=== SHEET:"
SHEET_NAME_PATTERN = re.compile(r"^(.+?)\s*===\s*$")
EXCLUDED_SHEET_KEYWORDS = ("notes", "qualifications", "summary")

BILL_NUMBER_PATTERNS = (
    re.compile(r"BILL\s*(?:NO\.?\s*)?(\d+)", re.IGNORECASE),
    re.compile(r"^(\d+)\."),
)
MAX_BILL_NUMBER = 9999
BILL_NAME_PREFIXES = (
    re.compile(r"BILL\s*(?:NO\.?\s*)?\d+\s*[-:.]?\s*", re.IGNORECASE),
    re.compile(r"^\d+\.\d*\s*"),
)

# Ordered: the first category with a keyword hit wins.
CATEGORY_KEYWORDS: "MappingProxyType[str, tuple[str, ...]]" = MappingProxyType({
    "HV": ("substation", "11kv", "11 kv", "22kv", "33kv", "medium voltage", "mv ", "rmu",
           "ring main", "transformer", "mva", "switchgear"),
    "LV": ("distribution board", "db-", "mdb", "sdb", "main board", "sub board", "panel",
           "lv ", "low voltage", "busbar", "bus duct"),
    "CB-PW": ("xlpe", "pvc cable", "power cable", "armoured cable", "swa ", "cable 4c",
              "cable 3c", "cable 2c", "95mm", "70mm", "50mm", "35mm", "25mm", "16mm",
              "240mm", "185mm", "150mm", "120mm"),
    "CB-CT": ("control cable", "signal cable", "instrumentation", "screened cable"),
    "CT": ("cable tray", "cable ladder", "trunking", "conduit", "gpo trunking", "perforated",
           "solid lid", "nextube"),
    "EA": ("earth", "earthing", "ground", "electrode", "lightning", "equipotential",
           "earth rod", "earth tape", "earth bar"),
    "LT": ("light fitting", "led ", "luminaire", "downlight", "panel light", "strip light",
           "high bay", "flood light", "emergency light", "exit sign"),
    "AC": ("gland", "lug", "termination", "cable accessories", "joint", "heat shrink",
           "cable tie"),
    "SW": ("switch", "socket", "isolator", "mcb", "mccb", "rcd", "rcbo", "circuit breaker",
           "contactor", "starter", "dol"),
    "GN": ("prelim", "builders work", "testing", "commissioning", "as-built",
           "documentation", "general", "attendance"),
    "FC": ("fire alarm", "smoke detector", "call point", "sounder", "beacon",
           "fire detection"),
    "SC": ("access control", "cctv", "camera", "intercom", "gate motor", "boom gate",
           "security"),
    "DB": ("draw box", "junction box", "pull box", "enclosure", "ip55", "ip65",
           "weatherproof box"),
    "AP": ("appliance", "geyser", "water heater", "extractor", "fan", "pump", "motor",
           "hvac", "air conditioning"),
})

UNIT_SYNONYMS: "MappingProxyType[str, str]" = MappingProxyType({
    # area
    "m2": "M2", "m²": "M2", "sqm": "M2", "sq.m": "M2", "sq m": "M2", "m.sq": "M2",
    "square meter": "M2", "square metre": "M2",
    # volume
    "m3": "M3", "m³": "M3", "cum": "M3", "cu.m": "M3", "cubic": "M3",
    # length
    "m": "M", "lm": "M", "lin.m": "M", "linear meter": "M", "linear metre": "M",
    "metre": "M", "meter": "M",
    # count
    "nr": "NO", "no": "NO", "no.": "NO", "nos": "NO", "ea": "NO", "each": "NO",
    "pcs": "NO", "pc": "NO", "unit": "NO", "units": "NO",
    # mass
    "kg": "KG", "kgs": "KG", "kilogram": "KG",
    "t": "TON", "ton": "TON", "tonne": "TON", "tons": "TON",
    # lump quantities
    "set": "SET", "sets": "SET",
    "lot": "LOT", "lots": "LOT",
    "item": "ITEM", "items": "ITEM",
    "sum": "SUM", "l/sum": "SUM", "lump sum": "SUM",
    "%": "%", "percent": "%",
    # provisional sums and prime cost
    "ps": "PS", "p.s.": "PS", "prov sum": "PS", "provisional sum": "PS",
    "pc sum": "PC", "prime cost": "PC",
})

# Column-name recognition for header rows. Order matters: the first field whose
# pattern matches a cell claims it.
HEADER_FIELD_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("item_code", re.compile(r"^(item|ref|code|no\.?|item\s*no\.?|item\s*code)$", re.IGNORECASE)),
    ("description", re.compile(r"(description|particulars|details)", re.IGNORECASE)),
    ("quantity", re.compile(r"^(qty|quantity|quant\.?)$", re.IGNORECASE)),
    ("unit", re.compile(r"^(unit|units|uom)$", re.IGNORECASE)),
    ("supply_rate", re.compile(r"supply", re.IGNORECASE)),
    ("install_rate", re.compile(r"(install|labour|labor)", re.IGNORECASE)),
    ("amount", re.compile(r"(amount|extension|^total$|^total\s*\()", re.IGNORECASE)),
    ("total_rate", re.compile(r"rate", re.IGNORECASE)),
)
MIN_HEADER_CELLS = 2

SECTION_HEADER_PATTERNS = (
    re.compile(r"^#+\s*(?P<name>.+)$"),
    re.compile(r"^SECTION\s+(?P<code>[A-Z0-9]+)?[\s.:\-]*(?P<name>.*)$", re.IGNORECASE),
    re.compile(r"^(?P<code>[A-Z])[.\s]+(?P<name>[^\d].*)$"),
)
CODE_SHAPED_TOKEN = re.compile(r"^[A-Z]{1,3}\d+(?:\.\d+)*[a-z]?$", re.IGNORECASE)
LEADING_ITEM_CODE = re.compile(r"^(?P<code>[A-Z]{1,3}\d+(?:\.\d+)*[a-z]?)\s+(?P<rest>.+)$", re.IGNORECASE)
RATE_ONLY_PATTERN = re.compile(r"rate\s*only", re.IGNORECASE)

ROW_SKIP_PATTERNS = (
    re.compile(r"^(item\s+)?description\b", re.IGNORECASE),
    re.compile(r"^(sub[\s-]?)?total\b", re.IGNORECASE),
    re.compile(r"\b(carried|brought)\s+forward\b", re.IGNORECASE),
    re.compile(r"^(c/f|b/f)\b", re.IGNORECASE),
    re.compile(r"^collection\b", re.IGNORECASE),
    re.compile(r"^notes?\b[:\s]", re.IGNORECASE),
    re.compile(r"^page\s+\d+", re.IGNORECASE),
)

NON_MATERIAL_PATTERNS = (
    re.compile(r"notes?\s+to\s+tenderers?", re.IGNORECASE),
    re.compile(r"^(the\s+)?tenderers?\s+(shall|must|is|are|to|will|should)\b", re.IGNORECASE),
    re.compile(r"^(all\s+)?(the\s+)?(work|materials?|equipment|installations?)\s+(shall|must|is\s+to|are\s+to)\s+(comply|be\s+in\s+accordance)\b", re.IGNORECASE),
    re.compile(r"^(ditto|do\.?|as\s+above|as\s+before|as\s+per\s+item)\b", re.IGNORECASE),
    re.compile(r"^(section|bill|part)\b\s*(no\.?\s*)?[A-Z0-9]*\s*[:.\-]?\s*$", re.IGNORECASE),
    re.compile(r"^(sub[\s-]?)?total\b", re.IGNORECASE),
    re.compile(r"\b(carried|brought)\s+(forward|to\s+collection|to\s+summary)\b", re.IGNORECASE),
    re.compile(r"^(c/f|b/f|collection)\b", re.IGNORECASE),
    re.compile(r"^(item|description|qty|quantity|unit|rate|amount)(\s+(item|description|qty|quantity|unit|rate|amount))*$", re.IGNORECASE),
    re.compile(r"^[A-Z]\.?$", re.IGNORECASE),
)
PURELY_NUMERIC = re.compile(r"^[\d\s.,]+$")
REVIEWABLE_ITEM_CODE = re.compile(r"^[A-Z]\d+")

AI_CONFIDENCE = 0.5
PARTIAL_CONFIDENCE = 0.4
CODE_MATCH_CONFIDENCE = 0.95
NAME_MATCH_CONFIDENCE = 0.9
PARTIAL_MATCH_CONFIDENCE = 0.7
PARTIAL_MATCH_MAX_LENGTH = 200
