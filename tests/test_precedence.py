import unittest

from autowire import Container, NotFoundError


class TestResolutionPrecedence(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_get_uses_type_annotation_when_named_registration_exists(self):
        class DB: ...

        class AnotherDB: ...

        class Repo:
            def __init__(self, db: DB):
                self.db = db

        # Register by name
        self.cont.bind("db", lambda _: AnotherDB())

        obj = self.cont.get(Repo)

        # Use type hint, parameter names are never looked up
        assert isinstance(obj.db, DB)
        assert not isinstance(obj.db, AnotherDB)

    def test_untyped_parameter_ignores_named_registration(self):
        class Repo:
            def __init__(self, db):
                self.db = db

        self.cont.instance("db", object())

        with self.assertRaises(NotFoundError):
            self.cont.get(Repo)

    def test_get_uses_override_argument_when_type_annotation_exists(self):
        class DB: ...

        class Repo:
            def __init__(self, db: DB):
                self.db = db

        override_db = DB()
        obj = self.cont.get(Repo, {"db": override_db})
        assert obj.db is override_db

    def test_primitive_positional_override_does_not_fill_typed_slot(self):
        class DB: ...

        class Repo:
            def __init__(self, db: DB, table="users"):
                self.db = db
                self.table = table

        obj = self.cont.get(Repo, {0: "accounts"})

        assert isinstance(obj.db, DB)
        assert obj.table == "accounts"

    def test_override_wins_over_default_value(self):
        class WithDefault:
            def __init__(self, port: int = 5555):
                self.port = port

        obj = self.cont.get(WithDefault, {"port": 9898})
        assert obj.port == 9898

    def test_binding_short_circuits_constructor_resolution(self):
        class Repo:
            def __init__(self, db):
                self.db = db

        self.cont.bind(Repo, lambda _: Repo("bound"))

        assert self.cont.get(Repo).db == "bound"

    def test_type_binding_wins_over_autowiring_for_dependency(self):
        class Repo: ...

        class NamedRepo(Repo):
            def __init__(self, name: str = ""):
                super().__init__()
                self.name = name

        class Service:
            def __init__(self, repo: Repo):
                self.repo = repo

        self.cont.bind(Repo, NamedRepo)

        obj = self.cont.get(Service)

        assert type(obj.repo) is NamedRepo
