from protean.domain import Domain
from sqlalchemy import create_engine


def _is_relational(provider) -> bool:
    return provider.conn_info["provider"] in ("sqlite", "postgresql")


def setup_db(domain: Domain):
    """Setup database schema"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if not _is_relational(provider):
                continue

            engine = create_engine(provider.conn_info["database_uri"])

            # Touch each repository's _dao so the models (deliveries, stops,
            #   drivers, progress views) get registered with SQLAlchemy first.
            for registry in (
                domain.registry.aggregates,
                domain.registry.entities,
                domain.registry.projections,
            ):
                for _, record in registry.items():
                    if record.cls.meta_.provider == provider.name:
                        domain.repository_for(record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    """Drop database schema"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if _is_relational(provider):
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)
