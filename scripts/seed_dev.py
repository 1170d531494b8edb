"""Reset the development database and add one open and one closed giveaway."""

from datetime import datetime, timedelta, timezone

from fairdraw.config import Settings
from fairdraw.db.engine import get_sessionmaker, make_engine
from fairdraw.models import Base, Giveaway, GiveawayEntry, WeightRule
from fairdraw.repository import GiveawayRepository


def main() -> None:
    settings = Settings.from_env()
    engine = make_engine(database_url=settings.db_url)

    # Entries and rules reference giveaways; drop with foreign keys off.
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    repository = GiveawayRepository(get_sessionmaker(engine))

    now = datetime.now(timezone.utc)
    booster_rules = [
        WeightRule(role_id="role-booster", bonus=2, position=0),
        WeightRule(role_id="role-veteran", bonus=1, position=1),
    ]

    running = repository.append(
        Giveaway(
            id="",
            title="Nitro Classic (1 month)",
            channel_id="channel-general",
            closes_at=now + timedelta(days=1),
            server_seed_public=settings.server_seed_public,
            base_amount=1,
            winner_count=1,
            weight_rules=booster_rules,
            created_by="admin-01",
            created_at=now,
        )
    )
    for participant_id, name, roles in (
        ("user-01", "Alice", ["role-booster"]),
        ("user-02", "Bob", []),
        ("user-03", "Carol", ["role-veteran", "role-booster"]),
    ):
        repository.add_entry(
            running.id,
            GiveawayEntry(participant_id=participant_id, display_name=name, roles=roles),
            now=now,
        )

    # Closes in the past so a scheduler started against this database draws it at once.
    ended = repository.append(
        Giveaway(
            id="",
            title="Sticker pack",
            channel_id="channel-general",
            closes_at=now + timedelta(seconds=1),
            server_seed_public=settings.server_seed_public,
            winner_count=2,
            created_by="admin-01",
            created_at=now,
        )
    )
    for participant_id, name in (("user-01", "Alice"), ("user-04", "Dave")):
        repository.add_entry(
            ended.id,
            GiveawayEntry(participant_id=participant_id, display_name=name),
            now=now,
        )
    repository.mark_closed(ended.id, now=now + timedelta(seconds=1))

    for giveaway in repository.load():
        totals = giveaway.entry_totals()
        print(
            f"{giveaway.id} {giveaway.title!r} status={giveaway.status} "
            f"participants={totals.participants} rows={totals.total_entries}"
        )


if __name__ == "__main__":
    main()
