"""
Builders for leaderboard spreadsheet grids.

Rows follow the sheet layout: column 0 holds the row number, and each
boss block (name, damage, battles, avg per ticket) starts at column
1 (Red Velvet Dragon), 8 (Avatar of Destiny), 15 (Living Abyss) or
22 (Machine God). Damage cells are in billions unless noted.
"""

ROW_WIDTH = 26
SECTION_STARTS = {"rvd": 1, "aod": 8, "la": 15, "mg": 22}

HEADER_ROWS = [
    ["GUILD BATTLE"] + [""] * (ROW_WIDTH - 1),
    ["#", "Red Velvet Dragon", "Damage", "Battles", "Avg", "", "", "",
     "Avatar of Destiny", "Damage", "Battles", "Avg", "", "", "",
     "Living Abyss", "Damage", "Battles", "Avg", "", "", "",
     "Machine God", "Damage", "Battles", "Avg"],
]


def make_row(number=1, width=ROW_WIDTH, **blocks):
    """
    Build one player row.

    Args:
        number: Value of the first cell.
        width: Total number of columns.
        **blocks: rvd/aod/la/mg -> (name, damage, battles[, avg])
    """
    row = [""] * width
    row[0] = str(number)
    for key, block in blocks.items():
        start = SECTION_STARTS[key]
        for offset, value in enumerate(block):
            if start + offset < width:
                row[start + offset] = value
    return row


def summary_row(marker="DAMAGE REQ"):
    return [marker, "6.0", "", "", "3.5"] + [""] * (ROW_WIDTH - 5)


def make_grid(rows, trailer=True):
    """Header rows, the given player rows, then summary rows."""
    grid = [list(r) for r in HEADER_ROWS] + [list(r) for r in rows]
    if trailer:
        grid.append(summary_row("DAMAGE REQ"))
        grid.append(summary_row("Min Tickets"))
    return grid


def happy_path_grid():
    """
    Three players with complete data for all four bosses.

    Totals: Alice 17.5B, Bob 15.3B, Cara 13.4B.
    Season 1 tickets: Alice 18, Bob 17, Cara 18.
    """
    return make_grid([
        make_row(1,
                 rvd=("Alice", "10.00", "9", "1.11"),
                 aod=("Cara", "5.00", "9", ""),
                 la=("Bob", "3.50", "9", ""),
                 mg=("Alice", "1.00", "9", "")),
        make_row(2,
                 rvd=("Bob", "8.00", "9", ""),
                 aod=("Alice", "4.00", "9", ""),
                 la=("Alice", "2.50", "9", ""),
                 mg=("Cara", "0.90", "9", "")),
        make_row(3,
                 rvd=("Cara", "6.00", "9", ""),
                 aod=("Bob", "3.00", "8", ""),
                 la=("Cara", "1.50", "9", ""),
                 mg=("Bob", "0.80", "9", "")),
    ])


def raw_points_grid():
    """Two players whose damage cells hold raw points with separators."""
    return make_grid([
        make_row(1,
                 rvd=("ZephyrCat", "53,701,335,417", "9", "5,966,815,046"),
                 aod=("gever", "16,358,384,806", "3", "")),
        make_row(2,
                 rvd=("gever", "45,576,626,648", "7", ""),
                 aod=("ZephyrCat", "13,368,099,652", "3", "")),
    ])
