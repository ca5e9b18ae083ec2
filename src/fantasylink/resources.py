"""Endpoint helpers for Yahoo Fantasy resources.

These build resource paths and return the decoded JSON as-is; mapping it
onto domain objects is left to the caller.
"""

from typing import Optional, Any, Dict, Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from fantasylink.client import FantasyClient

JSON_FORMAT = {"format": "json"}


class Resource:
    """Base class holding the client used for requests."""

    def __init__(self, client: "FantasyClient") -> None:
        self.client = client

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        merged = dict(JSON_FORMAT)
        if params:
            merged.update({k: v for k, v in params.items() if v is not None})
        return self.client.get_json(endpoint, params=merged)


def _week(week: Optional[int]) -> str:
    return f";week={week}" if week is not None else ""


class GameResource(Resource):
    def get_game(self, game_key: str) -> Any:
        return self._get(f"game/{game_key}")

    def get_games(self) -> Any:
        return self._get("games")

    def get_games_by_keys(self, game_keys: Iterable[str]) -> Any:
        return self._get(f"games;game_keys={','.join(str(k) for k in game_keys)}")


class LeagueResource(Resource):
    def get_league(self, league_key: str) -> Any:
        return self._get(f"league/{league_key}")

    def get_user_leagues(self, game_key: str) -> Any:
        return self._get(f"users;use_login=1/games;game_keys={game_key}/leagues")

    def get_standings(self, league_key: str) -> Any:
        return self._get(f"league/{league_key}/standings")

    def get_scoreboard(self, league_key: str, week: Optional[int] = None) -> Any:
        return self._get(f"league/{league_key}/scoreboard{_week(week)}")


class TeamResource(Resource):
    def get_team(self, team_key: str) -> Any:
        return self._get(f"team/{team_key}")

    def get_league_teams(self, league_key: str) -> Any:
        return self._get(f"league/{league_key}/teams")

    def get_roster(self, team_key: str, week: Optional[int] = None) -> Any:
        return self._get(f"team/{team_key}/roster{_week(week)}")

    def get_matchup(self, team_key: str, week: int) -> Any:
        return self._get(f"team/{team_key}/matchups;weeks={week}")


class PlayerResource(Resource):
    def get_player(self, player_key: str) -> Any:
        return self._get(f"player/{player_key}")

    def get_player_stats(self, player_key: str, week: Optional[int] = None) -> Any:
        """Season stats, or one week's stats when ``week`` is given."""
        suffix = f";type=week;week={week}" if week is not None else ""
        return self._get(f"player/{player_key}/stats{suffix}")

    def search_players(self, league_key: str, search: str) -> Any:
        return self._get(f"league/{league_key}/players", {"search": search})

    def get_league_players(
        self,
        league_key: str,
        start: Optional[int] = None,
        count: Optional[int] = None,
    ) -> Any:
        return self._get(
            f"league/{league_key}/players", {"start": start, "count": count}
        )


class FantasyResources:
    """All resource helpers bound to one client."""

    def __init__(self, client: "FantasyClient") -> None:
        self.games = GameResource(client)
        self.leagues = LeagueResource(client)
        self.teams = TeamResource(client)
        self.players = PlayerResource(client)
