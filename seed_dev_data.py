"""Seed the development database with default roles, a demo site and demo users."""

import os

from app.backend.src.db import get_engine, session_scope
from app.backend.src.models.base import Base
from app.backend.src.services.seed import seed_development_data


def main() -> None:
    """Create tables (if needed) and ensure the demo data exists."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    with session_scope() as session:
        auth0_sub = os.environ.get("AUTH0_DEMO_SUB")
        result = seed_development_data(session, auth0_sub=auth0_sub)

        print("Development data ready")
        print(f"Roles created: {', '.join(result.roles_created) or 'none'}")
        print(f"Site: {result.site.name} [id={result.site.id}, code={result.site.site_code}]")
        print(f"Users created: {', '.join(result.users_created) or 'none'}")
        if auth0_sub:
            print(f"Linked Auth0 subject to the demo admin: {auth0_sub}")
        else:
            print("Set AUTH0_DEMO_SUB to link an Auth0 subject to the demo admin.")


if __name__ == "__main__":
    main()
