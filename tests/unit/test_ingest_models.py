"""Tests for analysis data models."""

from guildbattle.ingest.models import (
    BossEncounterRecord, BossName, CanonicalPlayer, GuildRank,
)


class TestBossName:
    def test_parse_variants(self):
        assert BossName.parse("RedVelvetDragon") is BossName.RED_VELVET_DRAGON
        assert BossName.parse("red velvet dragon") is BossName.RED_VELVET_DRAGON
        assert BossName.parse("MACHINE_GOD") is BossName.MACHINE_GOD
        assert BossName.parse(BossName.LIVING_ABYSS) is BossName.LIVING_ABYSS

    def test_parse_unknown(self):
        assert BossName.parse("Kraken") is None
        assert BossName.parse("") is None
        assert BossName.parse(None) is None

    def test_label(self):
        assert BossName.AVATAR_OF_DESTINY.label == "Avatar of Destiny"


class TestGuildRank:
    def test_parse(self):
        assert GuildRank.parse(" officer ") is GuildRank.OFFICER
        assert GuildRank.parse("Leader") is GuildRank.LEADER
        assert GuildRank.parse("Elder") is None
        assert GuildRank.parse(None) is None

    def test_authority_order(self):
        assert GuildRank.LEADER.authority > GuildRank.OFFICER.authority > GuildRank.MEMBER.authority


class TestCanonicalPlayer:
    def test_totals(self, player_factory):
        player = player_factory("Alice", rvd=(10, 9), aod=(4, 3))
        assert player.total_damage == 14
        assert player.total_battles == 12
        assert player.damage_for(BossName.MACHINE_GOD) == 0
        assert player.battles_for(BossName.AVATAR_OF_DESTINY) == 3

    def test_to_dict(self, player_factory):
        player = player_factory("Alice", rank=1, level=70, guild_rank="Leader",
                                rvd=(9_000_000_000, 9))
        data = player.to_dict()

        assert data["playerName"] == "Alice"
        assert data["guildRank"] == "Leader"
        assert data["bosses"] == {
            "RedVelvetDragon": {
                "damage": 9_000_000_000,
                "battlesUsed": 9,
                "avgDamagePerTicket": 1_000_000_000,
            }
        }
        assert data["totalDamage"] == 9_000_000_000

    def test_from_dict_restores_player(self, player_factory):
        player = player_factory("Bob", rank=2, level=60, guild_rank="Officer",
                                rvd=(8_000_000_000, 9), aod=(3_000_000_000, 5))
        assert CanonicalPlayer.from_dict(player.to_dict()) == player

    def test_from_dict_accepts_battles_key(self):
        player = CanonicalPlayer.from_dict({
            "playerName": " gever ",
            "bosses": {"AvatarOfDestiny": {"damage": 5, "battles": 2}, "Kraken": {"damage": 1}},
        })
        assert player.player_name == "gever"
        assert player.bosses == {
            BossName.AVATAR_OF_DESTINY: BossEncounterRecord(BossName.AVATAR_OF_DESTINY, 5, 2),
        }

    def test_from_dict_drops_zero_damage_bosses(self):
        player = CanonicalPlayer.from_dict({
            "playerName": "Phelpzao",
            "bosses": {
                "RedVelvetDragon": {"damage": 0, "battlesUsed": 9},
                "AvatarOfDestiny": {"damage": 1_000, "battlesUsed": 1},
            },
        })
        assert set(player.bosses) == {BossName.AVATAR_OF_DESTINY}
        assert player.total_battles == 1
