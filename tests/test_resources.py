"""Tests for resource path helpers."""

import pytest
from unittest.mock import Mock, patch

from fantasylink import FantasyClient
from fantasylink.resources import FantasyResources


@pytest.fixture
def client():
    client = Mock()
    client.get_json.return_value = {"fantasy_content": {}}
    return client


@pytest.fixture
def resources(client):
    return FantasyResources(client)


def called_with(client):
    args, kwargs = client.get_json.call_args
    return args[0], kwargs["params"]


class TestGames:
    def test_get_game(self, resources, client):
        assert resources.games.get_game("nfl") == {"fantasy_content": {}}
        assert called_with(client) == ("game/nfl", {"format": "json"})

    def test_get_games_by_keys(self, resources, client):
        resources.games.get_games_by_keys(["nfl", "mlb", 423])

        assert called_with(client)[0] == "games;game_keys=nfl,mlb,423"


class TestLeagues:
    def test_user_leagues(self, resources, client):
        resources.leagues.get_user_leagues("423")

        assert called_with(client)[0] == "users;use_login=1/games;game_keys=423/leagues"

    def test_scoreboard_week(self, resources, client):
        resources.leagues.get_scoreboard("423.l.1", week=5)
        assert called_with(client)[0] == "league/423.l.1/scoreboard;week=5"

        resources.leagues.get_scoreboard("423.l.1")
        assert called_with(client)[0] == "league/423.l.1/scoreboard"

    def test_standings(self, resources, client):
        resources.leagues.get_standings("423.l.1")

        assert called_with(client)[0] == "league/423.l.1/standings"


class TestTeams:
    def test_roster(self, resources, client):
        resources.teams.get_roster("423.l.1.t.2", week=3)

        assert called_with(client)[0] == "team/423.l.1.t.2/roster;week=3"

    def test_matchup(self, resources, client):
        resources.teams.get_matchup("423.l.1.t.2", 7)

        assert called_with(client)[0] == "team/423.l.1.t.2/matchups;weeks=7"

    def test_league_teams(self, resources, client):
        resources.teams.get_league_teams("423.l.1")

        assert called_with(client)[0] == "league/423.l.1/teams"


class TestPlayers:
    def test_player_stats(self, resources, client):
        resources.players.get_player_stats("423.p.100", week=2)
        assert called_with(client)[0] == "player/423.p.100/stats;type=week;week=2"

        resources.players.get_player_stats("423.p.100")
        assert called_with(client)[0] == "player/423.p.100/stats"

    def test_search_players(self, resources, client):
        resources.players.search_players("423.l.1", "mahomes")

        assert called_with(client) == (
            "league/423.l.1/players",
            {"format": "json", "search": "mahomes"},
        )

    def test_league_players_drops_unset_paging(self, resources, client):
        resources.players.get_league_players("423.l.1", start=25)

        assert called_with(client)[1] == {"format": "json", "start": 25}


class TestResourcesThroughClient:
    """Resource helpers go through the client pipeline."""

    @patch("httpx.Client.request")
    def test_repeat_lookup_served_from_cache(self, mock_request, credentials, mock_response_200):
        mock_request.return_value = mock_response_200

        with FantasyClient(credentials=credentials) as client:
            resources = FantasyResources(client)

            first = resources.games.get_games()
            second = resources.games.get_games()

        assert first == second == {"fantasy_content": {"games": []}}
        assert mock_request.call_count == 1
        call_kwargs = mock_request.call_args[1]
        assert call_kwargs["url"].endswith("/fantasy/v2/games")
        assert call_kwargs["params"] == [("format", "json")]
