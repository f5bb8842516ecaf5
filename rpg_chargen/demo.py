"""Create demo tables and a demo character for development/testing."""

import json
import shutil

from rpg_chargen.models import Setup, Table, TableRow
from rpg_chargen.storage import Storage


def _card(title: str, rewards: list[dict], **choice) -> str:
    return json.dumps({"choice": {"title": title, **choice}, "rewards": rewards})


DEMO_TABLES = [
    Table(id="origins", name="Origins", rows=[
        TableRow(id="o1", name="Born Poor", description=_card(
            "Born Poor",
            [{"weight": 1, "changes": [{"type": "money", "amount": 5}],
              "next": {"tableRef": "youth"}}],
            text="Your family scraped by on the edge of the market district.",
            bio="Grew up hungry and quick.",
        )),
        TableRow(id="o2", name="Merchant House", description=_card(
            "Merchant House",
            [{"weight": 3, "changes": [{"type": "money", "amount": 40}],
              "next": {"tableRef": "youth"}},
             {"weight": 1, "changes": [{"type": "money", "amount": 10},
                                        {"type": "contact"}]}],
            text="Ledgers and caravans were your nursery.",
        )),
        TableRow(id="o3", name="Temple Foundling", description=_card(
            "Temple Foundling",
            [{"changes": [{"type": "skill", "targetKey": "Skills_Lore", "targetLevel": 1,
                           "fallback": {"type": "money", "amount": 5}},
                          {"type": "misc"}],
              "next": {"tableRef": "youth", "rollsOverride": 2}}],
        )),
        TableRow(id="o4", name="Minor Nobility", description=_card(
            "Minor Nobility",
            [{"changes": [{"type": "social", "amount": 1, "reason": "family name"},
                          {"type": "money", "amount": 100}],
              "next": {"tableRef": "youth"}}],
            tags=["status"],
        )),
    ]),
    Table(id="youth", name="Youth", rows=[
        TableRow(id="y1", name="Street Brawler", description=_card(
            "Street Brawler",
            [{"weight": 2, "changes": [{"type": "stat", "characteristic": "STR"}]},
             {"weight": 1, "changes": [{"type": "body"}]}],
        )),
        TableRow(id="y2", name="Apprentice Smith", description=_card(
            "Apprentice Smith",
            [{"changes": [{"type": "item", "tableRef": "tools", "qty": 2},
                          {"type": "stat", "key": "Skills_Craft", "delta": 2}]}],
        )),
        TableRow(id="y3", name="Lucky Find", description=_card(
            "Lucky Find",
            [{"changes": [{"type": "luck", "on": True, "reason": "found a charm"},
                          {"type": "money", "amount": 15}]}],
        )),
        TableRow(id="y4", name="Court Page", description=_card(
            "Court Page",
            [{"changes": [{"type": "social", "amount": 1, "reason": "served at court"},
                          {"type": "contact"}]}],
            tags=["status"],
        )),
    ]),
    Table(id="professions", name="Professions", rows=[
        TableRow(id="p1", name="Blacksmith"),
        TableRow(id="p2", name="Sailor"),
        TableRow(id="p3", name="Scribe"),
    ]),
    Table(id="regions", name="Regions", rows=[
        TableRow(id="r1", name="the Northern Reach"),
        TableRow(id="r2", name="the Salt Coast"),
    ]),
    Table(id="connections", name="Connections", rows=[
        TableRow(id="c1", name="Friend"),
        TableRow(id="c2", name="Rival"),
        TableRow(id="c3", name="Debtor"),
    ]),
    Table(id="body", name="Bodily Changes", rows=[
        TableRow(id="b1", name="Broken nose"),
        TableRow(id="b2", name="Burn scar on the left hand"),
    ]),
    Table(id="misc", name="Miscellaneous", rows=[
        TableRow(id="m1", name="A recurring dream of the sea"),
        TableRow(id="m2", name="A letter you never opened"),
    ]),
    Table(id="tools", name="Tools", rows=[
        TableRow(id="t1", name="Hammer"),
        TableRow(id="t2", name="Tongs"),
    ]),
]

DEMO_SETUP = Setup(
    table_ref="origins",
    choices_per_draw=2,
    max_rolls=4,
    contact_table_refs={"profession": "professions", "region": "regions", "connection": "connections"},
    body_table_ref="body",
    misc_table_ref="misc",
)


def create_demo_data(storage: Storage) -> None:
    """Wipe existing characters/tables and create fresh demo data."""
    for sub in ("characters", "tables"):
        path = storage.base_path / sub
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True, exist_ok=True)

    for table in DEMO_TABLES:
        storage.save_table(table)

    character = storage.create_character("Aldric", {
        "Inventory_Money": 0,
        "Social_Status": 0,
        "Stats_STRDice": 1,
        "Stats_STRMod": 0,
    })
    state = storage.get_chargen_state(character.id)
    storage.save_chargen_state(character.id, state.model_copy(update={"setup": DEMO_SETUP}))
