from typing import List, Optional, Tuple

from rgb_game import db
from rgb_game.models import Connection, utcnow


class ConnectionRegistry:
    """Live socket connections and the (game, player) each one speaks for."""

    def register(self, connection_id: str) -> Connection:
        conn = db.session.get(Connection, connection_id)
        if conn is None:
            conn = Connection(connection_id=connection_id, connected_at=utcnow())
            db.session.add(conn)
            db.session.commit()
        return conn

    def associate(self, connection_id: str, game_id: str, player_id: str) -> Connection:
        conn = db.session.get(Connection, connection_id)
        if conn is None:
            conn = Connection(connection_id=connection_id, connected_at=utcnow())
        conn.game_id = game_id
        conn.player_id = player_id
        db.session.add(conn)
        db.session.commit()
        return conn

    def dissociate(self, connection_id: str) -> None:
        conn = db.session.get(Connection, connection_id)
        if conn is not None:
            conn.game_id = None
            conn.player_id = None
            db.session.add(conn)
            db.session.commit()

    def remove(self, connection_id: str) -> Optional[Tuple[str, str]]:
        conn = db.session.get(Connection, connection_id)
        if conn is None:
            return None
        binding = (conn.game_id, conn.player_id) if conn.game_id and conn.player_id else None
        db.session.delete(conn)
        db.session.commit()
        return binding

    def lookup(self, connection_id: str) -> Optional[Tuple[str, str]]:
        conn = db.session.get(Connection, connection_id)
        if conn is None or not conn.game_id:
            return None
        return conn.game_id, conn.player_id

    def connections_for(self, game_id: str) -> List[str]:
        rows = Connection.query.filter_by(game_id=game_id).order_by(Connection.connected_at).all()
        return [row.connection_id for row in rows]

    def connections_for_player(self, game_id: str, player_id: str) -> List[str]:
        rows = Connection.query.filter_by(game_id=game_id, player_id=player_id).all()
        return [row.connection_id for row in rows]

    def purge(self, game_id: str) -> None:
        Connection.query.filter_by(game_id=game_id).update(
            {'game_id': None, 'player_id': None}, synchronize_session=False
        )
        db.session.commit()
