from users_service.db import Base as UsersBase, engine as users_engine
from posts_service.db import Base as PostsBase, engine as posts_engine

# Imported for their side effect of registering tables on each Base
import users_service.models  # noqa: F401
import posts_service.models  # noqa: F401


def main():
    for name, base, engine in (
        ("users", UsersBase, users_engine),
        ("posts", PostsBase, posts_engine),
    ):
        base.metadata.create_all(bind=engine)
        print(f"Created {name} tables: {', '.join(sorted(base.metadata.tables))}")


if __name__ == "__main__":
    main()
