"""
Tests for the Email Template Formatter pipeline.
"""

import pytest


def _opening_tags(html, name):
    from core.tag_scanner import scan_tags
    return [token for token in scan_tags(html, [name]) if not token.closing]


def _attr(token, name):
    from core.attributes import AttributeList
    return AttributeList.parse(token.attrs).get(name)


# Test TransformConfig
class TestTransformConfig:
    """Tests for the formatter settings record."""

    def test_defaults(self):
        """Test default settings."""
        from core import TransformConfig

        config = TransformConfig()
        assert config.target_width == 650
        assert config.responsive is False
        assert config.wrap_columns is False
        assert config.image_base_url == ""

    def test_unsupported_width_rejected(self):
        """Test that only supported widths are accepted."""
        from core import InvalidInputError, TransformConfig

        with pytest.raises(InvalidInputError):
            TransformConfig(target_width=700)

    def test_strings_are_stripped(self):
        """Test that text settings lose surrounding whitespace."""
        from core import TransformConfig

        config = TransformConfig(utm_medium="  email ", preheader_text="\tHello\n")
        assert config.utm_medium == "email"
        assert config.preheader_text == "Hello"

    def test_config_is_immutable(self):
        """Test that a config cannot be changed after creation."""
        from dataclasses import FrozenInstanceError
        from core import TransformConfig

        config = TransformConfig()
        with pytest.raises(FrozenInstanceError):
            config.target_width = 600

    def test_from_settings(self):
        """Test building a config from GUI settings."""
        from core import TransformConfig

        config = TransformConfig.from_settings({
            'target_width': '600',
            'wrap_columns': True,
            'auto_preview': True,  # GUI-only key, ignored
            'image_base_url': 'https://cdn.example.com/',
        })
        assert config.target_width == 600
        assert config.wrap_columns is True
        assert config.image_base_url == 'https://cdn.example.com/'

    def test_from_settings_bad_width(self):
        """Test that a non-numeric width is an input error."""
        from core import InvalidInputError, TransformConfig

        with pytest.raises(InvalidInputError):
            TransformConfig.from_settings({'target_width': 'wide'})


# Test input validation
class TestInputValidation:
    """Tests for rejected source HTML."""

    @pytest.mark.parametrize("source", ["", "   \n\t", None, 42, b"<table></table>"])
    def test_invalid_source(self, source):
        """Test that blank or non-string input is rejected before formatting."""
        from core import InvalidInputError, format_html

        with pytest.raises(InvalidInputError):
            format_html(source)

    def test_invalid_input_is_value_error(self):
        """Test that callers can catch ValueError."""
        from core import InvalidInputError

        assert issubclass(InvalidInputError, ValueError)


# Test the documented scenarios end to end
class TestScenarios:
    """End-to-end formatting scenarios."""

    def test_single_image_table(self):
        """Test the basic slice table from an export tool."""
        from core import TransformConfig, format_html
        from core.image_enhancer import IMAGE_BASE_STYLE

        source = '<table height="20"><tr><td><img src="pic.png"></td></tr></table>'
        config = TransformConfig(image_base_url="https://cdn.x.com/img", target_width=650)
        html = format_html(source, config)

        tables = _opening_tags(html, 'table')
        assert len(tables) == 1
        table = tables[0]
        assert _attr(table, 'height') is None
        assert _attr(table, 'width') == "650"
        assert _attr(table, 'role') == "presentation"

        img = _opening_tags(html, 'img')[0]
        assert _attr(img, 'src') == "https://cdn.x.com/img/pic.png"
        assert _attr(img, 'alt')
        assert _attr(img, 'style').startswith(IMAGE_BASE_STYLE)

        td = _opening_tags(html, 'td')[0]
        assert _attr(td, 'style').startswith("padding:0;font-size:0;line-height:0;")

    def test_slice_filenames_get_distinct_alts(self):
        """Test that numbered slices get numbered, distinct alt texts."""
        from core import format_html

        source = (
            '<table><tr><td><img src="slice_01.png"></td></tr>'
            '<tr><td><img src="slice_02.png"></td></tr></table>'
        )
        alts = [_attr(img, 'alt') for img in _opening_tags(format_html(source), 'img')]

        assert len(alts) == 2
        assert "section 01" in alts[0]
        assert "section 02" in alts[1]
        assert alts[0] != alts[1]

    def test_relative_link_gets_utm_parameters(self):
        """Test UTM tagging of a relative link."""
        from core import TransformConfig, format_html

        source = '<table><tr><td><a href="/shop?ref=x">Shop</a></td></tr></table>'
        config = TransformConfig(utm_medium="email", utm_campaign="spring")
        link = _opening_tags(format_html(source, config), 'a')[0]

        href = _attr(link, 'href')
        assert "utm_medium=email&utm_campaign=spring" in href
        assert href.startswith("/shop?ref=x")


# Test pipeline-wide properties
class TestPipelineProperties:
    """Properties that hold for every formatted document."""

    SOURCE = (
        '<table width="600" style="width:600px;max-width:600px"><tr>'
        '<td><img src="images/hero.png" alt="Hero"></td></tr>'
        '<tr><td><table><tr><td><img src="images/hero.png" alt="hero"></td>'
        '<td><img src="logo.png"></td></tr></table></td></tr>'
        '<tr><td>Text <img src="icon.png"></td></tr>'
        '<tr><td><a href="mailto:hi@example.com">Mail</a> '
        '<a href="tel:+15551234">Call</a> <a href="#top">Top</a> '
        '<a href="javascript:void(0)">JS</a> '
        '<a href="https://example.com/page">Page</a></td></tr></table>'
    )

    def test_fixed_width_invariant(self):
        """Test that every table gets the fixed width and no max-width."""
        from core import TransformConfig, format_html

        html = format_html(self.SOURCE, TransformConfig(target_width=600))
        tables = _opening_tags(html, 'table')

        assert len(tables) == 2
        for table in tables:
            assert _attr(table, 'width') == "600"
            assert 'max-width' not in _attr(table, 'style')

    def test_responsive_width_invariant(self):
        """Test that responsive tables carry width=100% and one max-width."""
        from core import TransformConfig, format_html

        html = format_html(self.SOURCE, TransformConfig(responsive=True, target_width=650))
        for table in _opening_tags(html, 'table'):
            assert _attr(table, 'width') == "100%"
            assert _attr(table, 'style').count('max-width:650px') == 1
            assert _attr(table, 'style').count('max-width') == 1

    def test_alt_uniqueness(self):
        """Test that no two images share an alt text, ignoring case."""
        from core import format_html

        alts = [_attr(img, 'alt') for img in _opening_tags(format_html(self.SOURCE), 'img')]
        assert len(alts) == 4
        assert len({alt.lower() for alt in alts}) == 4

    def test_link_safety(self):
        """Test that special links stay byte-identical and web links are tagged."""
        from core import TransformConfig, format_html

        config = TransformConfig(utm_medium="email", utm_campaign="june")
        html = format_html(self.SOURCE, config)

        for href in ('mailto:hi@example.com', 'tel:+15551234', '#top', 'javascript:void(0)'):
            assert f'href="{href}"' in html
        assert 'href="https://example.com/page?utm_medium=email&utm_campaign=june"' in html

    def test_image_cell_selectivity(self):
        """Test that only cells holding a lone image are collapsed."""
        from core import format_html

        html = format_html(self.SOURCE)
        for td in _opening_tags(html, 'td'):
            following = html[td.end:td.end + 4]
            style = _attr(td, 'style') or ""
            if following == '<img':
                assert style.startswith("padding:0;font-size:0;line-height:0;")
            else:
                assert 'font-size:0' not in style

    def test_document_completeness(self):
        """Test that output is a full document with one html/head/body."""
        from core import format_html

        html = format_html(self.SOURCE)
        assert html.startswith("<!DOCTYPE")
        assert len(_opening_tags(html, 'html')) == 1
        assert len(_opening_tags(html, 'head')) == 1
        assert len(_opening_tags(html, 'body')) == 1

    def test_document_completeness_for_full_input(self):
        """Test that a full document is not wrapped a second time."""
        from core import format_html

        source = (
            '<!DOCTYPE html><html><head><title>June</title></head>'
            '<body><table><tr><td>Hi</td></tr></table></body></html>'
        )
        html = format_html(source)
        assert len(_opening_tags(html, 'html')) == 1
        assert len(_opening_tags(html, 'body')) == 1
        assert '<title>June</title>' in html

    def test_conditional_comments_survive(self):
        """Test that Outlook conditional blocks pass through untouched."""
        from core import format_html

        block = (
            '<!--[if mso]><table width="600"  height="10"><tr><td>'
            '<v:rect  fill="true"  style="width:600px;"></v:rect><![endif]-->'
        )
        source = f'<table><tr><td>{block}<img src="a.png"></td></tr></table>'
        assert block in format_html(source)

    def test_author_background_fallback_survives(self):
        """Test that a flat color declared before a gradient reaches bgcolor."""
        from core import format_html
        from core.cell_cleanup import IMAGE_CELL_STYLE

        source = (
            '<table><tr><td style="background:#ff0000;background:linear-gradient(#0f0,#00f);">'
            '<img src="a.png"></td></tr></table>'
        )
        html = format_html(source)
        assert (
            f'<td style="{IMAGE_CELL_STYLE}background:#ff0000;background:linear-gradient(#0f0,#00f);"'
            ' bgcolor="#ff0000">'
        ) in html

    def test_formatting_twice_is_stable(self):
        """Test that re-formatting the output changes nothing."""
        from core import TransformConfig, format_html

        config = TransformConfig(
            image_base_url="https://cdn.example.com",
            utm_medium="email",
            utm_campaign="june",
            wrap_columns=True,
        )
        once = format_html(self.SOURCE, config)
        twice = format_html(once, TransformConfig(
            image_base_url="https://cdn.example.com",
            utm_medium="email",
            utm_campaign="june",
            wrap_columns=True,
        ))
        assert twice == once


# Test EmailFormatter
class TestEmailFormatter:
    """Tests for the pipeline orchestrator."""

    def test_stage_order(self):
        """Test the fixed stage order."""
        from core import EmailFormatter, FormatStage, TransformConfig

        stages = [stage for stage, _ in EmailFormatter(TransformConfig()).stages()]
        assert stages == [
            FormatStage.STRIP_HEIGHTS,
            FormatStage.NORMALIZE_TABLES,
            FormatStage.INJECT_PREHEADER,
            FormatStage.INJECT_BALANCE_TEXT,
            FormatStage.ENHANCE_IMAGES,
            FormatStage.COLLAPSE_IMAGE_CELLS,
            FormatStage.CLEAN_COLSPANS,
            FormatStage.TAG_LINKS,
            FormatStage.TIDY_WHITESPACE,
            FormatStage.PROPAGATE_BACKGROUNDS,
            FormatStage.WRAP_DOCUMENT,
        ]

    def test_column_wrap_runs_before_colspan_cleanup(self):
        """Test that the optional column stage sits before the colspan cleaner."""
        from core import EmailFormatter, FormatStage, TransformConfig

        stages = [stage for stage, _ in EmailFormatter(TransformConfig(wrap_columns=True)).stages()]
        wrap_index = stages.index(FormatStage.WRAP_COLUMNS)
        assert stages[wrap_index - 1] == FormatStage.COLLAPSE_IMAGE_CELLS
        assert stages[wrap_index + 1] == FormatStage.CLEAN_COLSPANS

    def test_result_details(self):
        """Test the result record of a successful run."""
        from core import EmailFormatter, TransformConfig

        formatter = EmailFormatter(TransformConfig(image_base_url="https://cdn.example.com"))
        result = formatter.format('<table><tr><td><img src="a.png"></td></tr></table>')

        assert result.success
        assert result.html.startswith("<!DOCTYPE")
        assert len(result.stages_completed) == 11
        assert result.report is not None
        assert result.report.image_count == 1
        assert result.duration_seconds >= 0

    def test_failing_stage_is_skipped(self, monkeypatch):
        """Test that a failing stage is logged and its input passed through."""
        import core.formatter_pipeline as pipeline
        from core import EmailFormatter, FormatStage

        def broken(html):
            raise RuntimeError("boom")

        monkeypatch.setattr(pipeline, 'tidy_whitespace', broken)
        result = EmailFormatter().format('<table><tr><td>a   b</td></tr></table>')

        assert result.success
        assert FormatStage.TIDY_WHITESPACE not in result.stages_completed
        assert any('tidy_whitespace' in warning for warning in result.warnings)
        assert 'a   b' in result.html

    def test_progress_callback(self):
        """Test that progress is reported for every stage."""
        from core import EmailFormatter, FormatStage

        updates = []
        EmailFormatter(progress_callback=updates.append).format('<table><tr><td>x</td></tr></table>')

        assert len(updates) == 12
        assert updates[0].stage == FormatStage.STRIP_HEIGHTS
        assert updates[-1].stage == FormatStage.COMPLETE
        assert updates[-1].percentage == 100

    def test_existing_hidden_block_warning(self):
        """Test the warning for sources that already carry a preview block."""
        from core import EmailFormatter, TransformConfig

        source = (
            '<table><tr><td><div style="display:none;mso-hide:all;">Old preview</div>'
            '</td></tr></table>'
        )
        result = EmailFormatter(TransformConfig(preheader_text="New preview")).format(source)

        assert any('hidden preview block' in warning for warning in result.warnings)
        assert result.html.count('New preview') == 1
        assert 'Old preview' in result.html

    def test_missing_table_warning(self):
        """Test the warning when there is no table for the hidden rows."""
        from core import EmailFormatter, TransformConfig

        result = EmailFormatter(TransformConfig(preheader_text="Hi")).format('<p>Just text</p>')
        assert any('No <table>' in warning for warning in result.warnings)
        assert 'Hi' not in result.html.split('<body', 1)[1]

    def test_relative_images_without_base_url_warning(self):
        """Test the warning for relative images when no base URL is set."""
        from core import EmailFormatter

        result = EmailFormatter().format('<table><tr><td><img src="a.png"></td></tr></table>')
        assert any('relative image' in warning for warning in result.warnings)

        result = EmailFormatter().format(
            '<table><tr><td><img src="https://cdn.example.com/a.png"></td></tr></table>'
        )
        assert not any('relative image' in warning for warning in result.warnings)

    def test_preheader_and_balance_order(self):
        """Test that the preheader row comes first, then the balance text."""
        from core import TransformConfig, format_html

        config = TransformConfig(preheader_text="Preview here", balance_text="Balance here")
        html = format_html('<table><tr><td>Body</td></tr></table>', config)

        assert html.index('Preview here') < html.index('Balance here') < html.index('Body')


# Test ContentReport
class TestContentReport:
    """Tests for the post-run content analysis."""

    HTML = (
        '<table><tr><td><img src="a.png" alt="A"><img src="b.png" alt="a">'
        '<img src="c.png"></td></tr></table>'
        '<a href="https://x.com/?utm_medium=e">x</a><a href="/p">y</a>'
        '<div style="display:none;mso-hide:all;">hidden preview</div>'
        '<p>Hello world</p>'
    )

    def test_counts(self):
        """Test image, link and table counts."""
        from core import analyze_html

        report = analyze_html(self.HTML)
        assert report.table_count == 1
        assert report.image_count == 3
        assert report.images_missing_alt == 1
        assert report.duplicate_alts == ['a']
        assert report.link_count == 2
        assert report.utm_tagged_links == 1

    def test_hidden_text_not_counted(self):
        """Test that hidden preview text is excluded from the visible text."""
        from core import analyze_html

        report = analyze_html(self.HTML)
        assert report.visible_text_length == len("x y Hello world")

    def test_image_heavy(self):
        """Test the image-heavy flag and its finding."""
        from core import analyze_html

        report = analyze_html(self.HTML)
        assert report.image_heavy
        assert any('Image-heavy' in finding for finding in report.findings())

        text_only = analyze_html('<p>' + 'word ' * 50 + '</p>')
        assert not text_only.image_heavy
        assert text_only.findings() == []

    def test_summary(self):
        """Test the one-line summary."""
        from core import analyze_html

        summary = analyze_html(self.HTML).summary()
        assert "3 images" in summary
        assert "2 links (1 tagged)" in summary
