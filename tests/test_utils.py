"""
Tests for utilities and the command line entry point.
"""

import pytest


# Test Text Utilities
class TestTextUtils:
    """Tests for string helpers."""

    def test_html_escape(self):
        """Test escaping of markup characters."""
        from utils.text_utils import html_escape

        assert html_escape('<a href="x">&') == '&lt;a href=&quot;x&quot;&gt;&amp;'
        assert html_escape(None) == ""

    @pytest.mark.parametrize("base,path", [
        ("https://cdn.x.com/img", "pic.png"),
        ("https://cdn.x.com/img/", "pic.png"),
        ("https://cdn.x.com/img//", "//pic.png"),
        ("https://cdn.x.com/img", "/pic.png"),
    ])
    def test_join_url(self, base, path):
        """Test joining with exactly one slash."""
        from utils.text_utils import join_url

        assert join_url(base, path) == "https://cdn.x.com/img/pic.png"

    def test_splice_insertions(self):
        """Test several insertions against original positions."""
        from utils.text_utils import splice_insertions

        assert splice_insertions('abc', [(1, 1, 'X'), (1, 0, 'Y'), (3, 0, 'Z')]) == 'aYXbcZ'
        assert splice_insertions('abc', []) == 'abc'

    def test_excerpt_words(self):
        """Test word and character limits."""
        from utils.text_utils import excerpt_words

        assert excerpt_words('one two three', max_words=2) == 'one two'
        assert excerpt_words('alpha beta gamma', max_chars=10) == 'alpha beta'
        assert excerpt_words('Supercalifragilistic', max_chars=5) == 'Super'
        assert excerpt_words('') == ''


# Test File Utilities
class TestFileUtils:
    """Tests for file helpers."""

    def test_sanitize_filename(self):
        """Test replacement of invalid characters."""
        from utils.file_utils import sanitize_filename

        assert sanitize_filename('a<b>:c') == 'a_b_c'
        assert sanitize_filename('') == 'unnamed'
        assert sanitize_filename('CON.html') == '_CON.html'

    def test_default_output_name(self):
        """Test the suggested save name."""
        from utils.file_utils import default_output_name

        assert default_output_name('Spring Sale') == 'Spring_Sale.html'
        assert default_output_name('') == 'email_formatted.html'

    def test_read_encodings(self, tmp_path):
        """Test UTF-8, BOM and cp1252 input."""
        from utils.file_utils import read_html_file, read_html_with_encoding

        plain = tmp_path / "plain.html"
        plain.write_bytes('<p>café</p>'.encode('utf-8'))
        assert read_html_file(plain) == '<p>café</p>'

        bom = tmp_path / "bom.html"
        bom.write_bytes('<p>café</p>'.encode('utf-8-sig'))
        assert read_html_with_encoding(bom) == ('<p>café</p>', 'utf-8-sig')

        legacy = tmp_path / "legacy.html"
        legacy.write_bytes(b'<p>caf\xe9</p>')
        assert read_html_with_encoding(legacy) == ('<p>café</p>', 'cp1252')

    def test_write_creates_directories(self, tmp_path):
        """Test writing into a new folder."""
        from utils.file_utils import write_html_file

        target = tmp_path / "out" / "email.html"
        assert write_html_file(target, '<p>x</p>') == target
        assert target.read_text(encoding='utf-8') == '<p>x</p>'

    def test_unique_filepath(self, tmp_path):
        """Test numbering of existing files."""
        from utils.file_utils import get_unique_filepath

        target = tmp_path / "email.html"
        assert get_unique_filepath(target) == target
        target.write_text('x')
        assert get_unique_filepath(target) == tmp_path / "email_1.html"

    def test_suggest_output_path(self, tmp_path):
        """Test that the suggested save name never overwrites an export."""
        from utils.file_utils import suggest_output_path

        assert suggest_output_path(tmp_path, 'Spring Sale') == tmp_path / "Spring_Sale.html"
        (tmp_path / "Spring_Sale.html").write_text('x')
        assert suggest_output_path(tmp_path, 'Spring Sale') == tmp_path / "Spring_Sale_1.html"
        assert suggest_output_path(tmp_path) == tmp_path / "email_formatted.html"


# Test the command line
class TestCommandLine:
    """Tests for headless formatting."""

    def test_format_to_file(self, tmp_path):
        """Test formatting a file into another file."""
        from main import run_cli

        source = tmp_path / "export.html"
        source.write_text('<table height="10"><tr><td><img src="a.png"></td></tr></table>', encoding='utf-8')
        output = tmp_path / "email.html"

        code = run_cli([
            str(source), '-o', str(output),
            '--image-base-url', 'https://cdn.x.com',
            '--utm-medium', 'email', '--utm-campaign', 'june',
            '--width', '600',
        ])

        assert code == 0
        html = output.read_text(encoding='utf-8')
        assert html.startswith('<!DOCTYPE')
        assert 'src="https://cdn.x.com/a.png"' in html
        assert 'width="600"' in html

    def test_format_to_stdout(self, tmp_path, capsys):
        """Test writing the result to stdout."""
        from main import run_cli

        source = tmp_path / "export.html"
        source.write_text('<table><tr><td>Hi</td></tr></table>', encoding='utf-8')

        assert run_cli([str(source), '--responsive']) == 0
        out = capsys.readouterr().out
        assert out.startswith('<!DOCTYPE')
        assert 'width="100%"' in out

    def test_empty_input(self, tmp_path):
        """Test the exit code for blank input."""
        from main import run_cli

        source = tmp_path / "empty.html"
        source.write_text('   ', encoding='utf-8')
        assert run_cli([str(source)]) == 2

    def test_missing_input(self, tmp_path):
        """Test the exit code for an unreadable file."""
        from main import run_cli

        assert run_cli([str(tmp_path / "missing.html")]) == 1

    def test_unsupported_width(self, tmp_path):
        """Test that argparse rejects unsupported widths."""
        from main import run_cli

        with pytest.raises(SystemExit):
            run_cli([str(tmp_path / "x.html"), '--width', '700'])
