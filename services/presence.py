"""
Состояние realtime-подключений в памяти процесса.

PresenceRegistry: кто из пользователей онлайн и через какие соединения.
BroadcastGroups: явная таблица подписок соединений на комнаты матчей.

Оба объекта живут внутри шлюза и трогаются только из event loop, поэтому
блокировок нет. При рестарте процесса всё строится заново по переподключениям.
"""
from collections import defaultdict
from typing import Dict, FrozenSet, Hashable, Iterable, Set


class PresenceRegistry:
    def __init__(self) -> None:
        self._connections: Dict[int, Set[Hashable]] = defaultdict(set)

    def register(self, user_id: int, connection: Hashable) -> None:
        self._connections[user_id].add(connection)

    def unregister(self, user_id: int, connection: Hashable) -> None:
        connections = self._connections.get(user_id)
        if connections is None:
            return
        connections.discard(connection)
        if not connections:
            del self._connections[user_id]

    def lookup(self, user_id: int) -> FrozenSet[Hashable]:
        return frozenset(self._connections.get(user_id, ()))

    def is_online(self, user_id: int) -> bool:
        return bool(self._connections.get(user_id))

    def online_users(self) -> FrozenSet[int]:
        return frozenset(self._connections)

    def __len__(self) -> int:
        return sum(len(conns) for conns in self._connections.values())


class BroadcastGroups:
    def __init__(self) -> None:
        self._members: Dict[int, Set[Hashable]] = defaultdict(set)
        self._subscriptions: Dict[Hashable, Set[int]] = defaultdict(set)

    def join(self, connection: Hashable, match_id: int) -> None:
        self._members[match_id].add(connection)
        self._subscriptions[connection].add(match_id)

    def join_many(self, connection: Hashable, match_ids: Iterable[int]) -> None:
        for match_id in match_ids:
            self.join(connection, match_id)

    def leave(self, connection: Hashable, match_id: int) -> None:
        members = self._members.get(match_id)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._members[match_id]
        subscriptions = self._subscriptions.get(connection)
        if subscriptions is not None:
            subscriptions.discard(match_id)
            if not subscriptions:
                del self._subscriptions[connection]

    def drop(self, connection: Hashable) -> None:
        """Убрать соединение из всех комнат (при отключении)."""
        for match_id in list(self._subscriptions.get(connection, ())):
            self.leave(connection, match_id)

    def members(self, match_id: int) -> FrozenSet[Hashable]:
        return frozenset(self._members.get(match_id, ()))

    def subscriptions(self, connection: Hashable) -> FrozenSet[int]:
        return frozenset(self._subscriptions.get(connection, ()))
