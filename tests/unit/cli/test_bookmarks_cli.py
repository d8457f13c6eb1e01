"""Unit tests for bookmark CLI commands."""

from termxfer.cli.main import app
from termxfer.core.bookmarks import BookmarkStore
from termxfer.models.session import ConnectionParams, Protocol
from termxfer.vault import CredentialVault, FileKeyStore
from typer.testing import CliRunner

runner = CliRunner()


def _store(config_home) -> BookmarkStore:
    vault = CredentialVault(FileKeyStore(config_home / ".vault.key"))
    return BookmarkStore(config_home / "bookmarks.toml", vault=vault)


class TestBookmarksAdd:
    """Tests for termxfer bookmarks add."""

    def test_add(self, config_home) -> None:
        """A bookmark is saved with every address part."""
        result = runner.invoke(
            app, ["bookmarks", "add", "prod", "sftp://deploy@prod.example.com:2222:/srv"]
        )

        assert result.exit_code == 0
        assert "Bookmark 'prod' saved" in result.output
        bookmark = _store(config_home).get_bookmark("prod")
        assert bookmark.address == "prod.example.com"
        assert bookmark.port == 2222
        assert bookmark.username == "deploy"
        assert bookmark.directory == "/srv"
        assert bookmark.password is None

    def test_add_with_password(self, config_home) -> None:
        """--save-password stores the password encrypted."""
        result = runner.invoke(
            app,
            ["bookmarks", "add", "nas", "ftp://admin@nas.lan", "--save-password"],
            input="s3cret\ns3cret\n",
        )

        assert result.exit_code == 0
        store = _store(config_home)
        bookmark = store.get_bookmark("nas")
        assert bookmark.password is not None
        assert "s3cret" not in (config_home / "bookmarks.toml").read_text()
        assert store.to_params(bookmark).password == "s3cret"

    def test_add_replaces(self, config_home) -> None:
        """Adding an existing name replaces the bookmark."""
        runner.invoke(app, ["bookmarks", "add", "prod", "old.example.com"])
        runner.invoke(app, ["bookmarks", "add", "prod", "new.example.com"])

        bookmarks = _store(config_home).bookmarks()
        assert [b.address for b in bookmarks] == ["new.example.com"]

    def test_add_invalid_address(self, config_home) -> None:
        """Unknown protocols are rejected."""
        result = runner.invoke(app, ["bookmarks", "add", "bad", "gopher://host"])

        assert result.exit_code == 1
        assert "Unknown protocol" in result.output
        assert not (config_home / "bookmarks.toml").exists()


class TestBookmarksList:
    """Tests for termxfer bookmarks list and recent."""

    def test_list_empty(self, config_home) -> None:
        """An empty store says so."""
        result = runner.invoke(app, ["bookmarks", "list"])

        assert result.exit_code == 0
        assert "No bookmarks saved." in result.output

    def test_list(self, config_home) -> None:
        """Saved bookmarks are listed by name."""
        runner.invoke(app, ["bookmarks", "add", "prod", "sftp://deploy@prod.lan"])

        result = runner.invoke(app, ["bookmarks", "list"])

        assert result.exit_code == 0
        assert "prod" in result.output
        assert "prod.lan" in result.output

    def test_recent_empty(self, config_home) -> None:
        """Without connections there are no recent hosts."""
        result = runner.invoke(app, ["bookmarks", "recent"])

        assert result.exit_code == 0
        assert "No recent hosts." in result.output

    def test_recent(self, config_home) -> None:
        """Recent hosts are listed."""
        store = _store(config_home)
        store.add_recent(ConnectionParams(Protocol.SCP, "build.lan", 22, username="ci"))
        store.save()

        result = runner.invoke(app, ["bookmarks", "recent"])

        assert result.exit_code == 0
        assert "build.lan" in result.output


class TestBookmarksRemove:
    """Tests for termxfer bookmarks remove."""

    def test_remove(self, config_home) -> None:
        """Removing a bookmark deletes it from the file."""
        runner.invoke(app, ["bookmarks", "add", "prod", "prod.lan"])

        result = runner.invoke(app, ["bookmarks", "remove", "prod"])

        assert result.exit_code == 0
        assert _store(config_home).get_bookmark("prod") is None

    def test_remove_missing(self, config_home) -> None:
        """Removing an unknown bookmark fails."""
        result = runner.invoke(app, ["bookmarks", "remove", "ghost"])

        assert result.exit_code == 1
        assert "No bookmark named 'ghost'" in result.output
