"""Tests for the static HTML catalog target."""

import pytest

from rowsync.components.target.html_catalog_target import (
    HTMLCatalogTarget,
    paragraphs,
    recover_last_id,
)
from rowsync.interfaces import ConfigurationError, TargetError

from conftest import FakeObjectStore

PLACEHOLDER = '<!--NEXT-->'


@pytest.fixture
def site(tmp_path):
    return tmp_path / 'www'


@pytest.fixture
def make_target(tmp_path, site, templates, asset_cache, policy):
    workdir = tmp_path / 'work'
    workdir.mkdir(exist_ok=True)

    def _make(template='page', placeholder=PLACEHOLDER):
        return HTMLCatalogTarget(
            name='site',
            directory=str(site),
            catalog='podcasts',
            template_path=templates[template],
            index_placeholder=placeholder,
            workdir=workdir,
            asset_cache=asset_cache,
            policy=policy
        )
    return _make


def index_of(site):
    return (site / 'podcasts' / 'index.html').read_text(encoding='utf-8')


class TestHelpers:

    def test_paragraphs_escape_and_skip_blank_lines(self):
        assert str(paragraphs("Line one\r\n\nLine <two>")) == "<p>Line one</p><p>Line &lt;two&gt;</p>"

    def test_recover_last_id(self, tmp_path):
        for name in ('1', '2', '5', 'notes'):
            (tmp_path / name).mkdir()
        (tmp_path / '9').write_text('not a directory')
        assert recover_last_id(tmp_path) == 5

    def test_recover_last_id_ignores_non_ascii_digits(self, tmp_path):
        for name in ('3', '²', '٣'):
            (tmp_path / name).mkdir()
        assert recover_last_id(tmp_path) == 3

    def test_recover_last_id_empty(self, tmp_path):
        assert recover_last_id(tmp_path) == 0


class TestSetup:

    def test_creates_index_with_placeholder(self, make_target, site):
        target = make_target()
        assert target.target_id() == 'html_catalog_site'
        assert target.last_id == 0
        assert index_of(site) == f"<ul>{PLACEHOLDER}</ul>"

    def test_placeholder_required(self, make_target):
        with pytest.raises(ConfigurationError, match='index placeholder not set'):
            make_target(placeholder='')

    @pytest.mark.parametrize('content', ['<ul></ul>', f'<ul>{PLACEHOLDER}{PLACEHOLDER}</ul>'])
    def test_existing_index_needs_exactly_one_placeholder(self, make_target, site, content):
        (site / 'podcasts').mkdir(parents=True)
        (site / 'podcasts' / 'index.html').write_text(content, encoding='utf-8')
        with pytest.raises(ConfigurationError):
            make_target()

    def test_missing_template(self, make_target, templates):
        templates['page'] = templates['page'] + '.missing'
        with pytest.raises(ConfigurationError, match='template not found'):
            make_target()


class TestInsert:

    def test_next_id_after_recovered_ids(self, make_target, site):
        for name in ('1', '2', '5'):
            (site / 'podcasts' / name).mkdir(parents=True)

        target = make_target()
        item_id = target.insert({'title': 'Six', 'text': 'body'}, FakeObjectStore())

        assert item_id == '6'
        assert target.last_id == 6
        assert (site / 'podcasts' / '6' / 'index.html').is_file()

    def test_index_lists_items_in_insertion_order(self, make_target, site):
        target = make_target()
        target.insert({'title': 'First', 'text': 'a'}, FakeObjectStore())
        target.insert({'title': 'A & B', 'text': 'b'}, FakeObjectStore())

        assert index_of(site) == (
            "<ul>"
            "<li><a href='//podcasts/1?item=1'>First</a></li>"
            "<li><a href='//podcasts/2?item=2'>A &amp; B</a></li>"
            f"{PLACEHOLDER}</ul>"
        )
        assert index_of(site).count(PLACEHOLDER) == 1
        assert target.index_buf == index_of(site)

    def test_item_page_is_rendered_escaped(self, make_target, site):
        target = make_target()
        target.insert({'title': '<i>T</i>', 'text': 'one\ntwo'}, FakeObjectStore())

        page = (site / 'podcasts' / '1' / 'index.html').read_text(encoding='utf-8')
        assert page == "<h1>&lt;i&gt;T&lt;/i&gt;</h1><p>one</p><p>two</p>"

    def test_audio_is_copied_next_to_the_page(self, make_target, site, asset_cache):
        store = FakeObjectStore({'ep1.mp3': b'audio'})
        target = make_target()

        target.insert({'title': 'T', 'text': 'x', 'audio': 'ep1.mp3'}, store)

        item_dir = site / 'podcasts' / '1'
        assert (item_dir / 'ep1.mp3').read_bytes() == b'audio'
        assert '<audio src="//podcasts/1/ep1.mp3"></audio>' in (item_dir / 'index.html').read_text()
        assert 'ep1.mp3' in asset_cache

    def test_created_files_use_policy_modes(self, make_target, site):
        make_target().insert({'title': 'T', 'text': 'x'}, FakeObjectStore())

        assert (site / 'podcasts' / '1').stat().st_mode & 0o777 == 0o700
        assert (site / 'podcasts' / '1' / 'index.html').stat().st_mode & 0o777 == 0o600
        assert (site / 'podcasts' / 'index.html').stat().st_mode & 0o777 == 0o600

    @pytest.mark.parametrize('row, message', [
        ({'title': '', 'text': 'x'}, 'no title'),
        ({'title': 'T', 'text': ''}, 'no text'),
        ({'text': 'x'}, 'no title'),
    ])
    def test_invalid_row(self, make_target, site, row, message):
        target = make_target()
        with pytest.raises(TargetError, match=message):
            target.insert(row, FakeObjectStore())
        assert not (site / 'podcasts' / '1').exists()
        assert target.last_id == 0


class TestFailureRecovery:

    def test_publish_failure_leaves_index_untouched(self, make_target, site, monkeypatch):
        target = make_target()
        target.insert({'title': 'First', 'text': 'a'}, FakeObjectStore())
        before = index_of(site)

        def fail(index_buf):
            raise OSError("disk full")
        monkeypatch.setattr(target, '_publish_index', fail)

        with pytest.raises(OSError, match='disk full'):
            target.insert({'title': 'Second', 'text': 'b'}, FakeObjectStore())

        assert index_of(site) == before
        assert target.index_buf == before
        assert not (site / 'podcasts' / '2').exists()
        assert target.last_id == 1

    def test_render_failure_frees_the_id(self, make_target, site):
        target = make_target(template='broken')
        before = index_of(site)

        with pytest.raises(TargetError, match='failed to render template'):
            target.insert({'title': 'T', 'text': 'x'}, FakeObjectStore())

        assert index_of(site) == before
        assert not (site / 'podcasts' / '1').exists()
        assert target.last_id == 0

    def test_missing_audio_removes_item_dir(self, make_target, site):
        target = make_target()
        with pytest.raises(Exception, match='file not found'):
            target.insert({'title': 'T', 'text': 'x', 'audio': 'gone.mp3'}, FakeObjectStore())
        assert not (site / 'podcasts' / '1').exists()

    def test_existing_item_dir_is_never_removed(self, make_target, site):
        target = make_target()
        taken = site / 'podcasts' / '1'
        taken.mkdir()
        (taken / 'keep.txt').write_text('mine')

        with pytest.raises(FileExistsError):
            target.insert({'title': 'T', 'text': 'x'}, FakeObjectStore())

        assert (taken / 'keep.txt').read_text() == 'mine'
        assert target.last_id == 0
