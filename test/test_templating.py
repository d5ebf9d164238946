import pytest

from cspace_provision.config import StageTemplate
from cspace_provision.error import ProvisionFileError, RenderError
from cspace_provision.templating import render_stage_template, render_template

pytestmark = [
    pytest.mark.unit,
]


class TestRenderTemplate:
    def test_substitution(self):
        """Test placeholders are replaced with their values."""
        assert render_template("EXPOSE {{ HTTP_PORT }}", {"HTTP_PORT": "8180"}) == "EXPOSE 8180"

    def test_values_are_literal(self):
        """Test values are inserted without escaping or further expansion."""
        rendered = render_template("ENV PW {{ PW }}", {"PW": "a&b<c>{{ X }}"})
        assert rendered == "ENV PW a&b<c>{{ X }}"

    def test_shell_syntax_untouched(self):
        """Test shell variables in the build-file are left alone."""
        template = 'CMD ["${CATALINA_HOME}/bin/catalina.sh", "run"]\n'
        assert render_template(template, {}) == template

    def test_trailing_newline_kept(self):
        assert render_template("FROM {{ BASE }}\n", {"BASE": "ubuntu"}) == "FROM ubuntu\n"

    def test_undefined_placeholder(self):
        """Test a placeholder without a value is an error, not an empty string."""
        with pytest.raises(Exception) as exc_info:
            render_template("ENV HOST {{ HOSTNAME }}", {})
        assert "HOSTNAME" in str(exc_info.value)

    def test_deterministic(self):
        values = {"A": "1", "B": "2"}
        assert render_template("{{ A }}{{ B }}", values) == render_template("{{ A }}{{ B }}", values)


class TestRenderStageTemplate:
    def test_render(self, basic_config):
        """Test the instance template is rendered into the stage context."""
        stage = basic_config.model.stages[2]
        context = stage.context_path(basic_config.base_path)
        destination = render_stage_template(context, stage.template, stage.name)

        assert destination == context / "Dockerfile"
        content = destination.read_text()
        assert "ENV CSPACE_HOSTNAME cspace.example.org" in content
        assert "ENV CSPACE_DB_PASSWORD s3cr3t&<>" in content
        assert "EXPOSE 8180" in content
        assert "{{" not in content

    def test_overwrites_destination(self, tmp_path):
        (tmp_path / "Dockerfile.template").write_text("FROM {{ BASE }}\n")
        (tmp_path / "Dockerfile").write_text("FROM stale\n")
        render_stage_template(tmp_path, StageTemplate(values={"BASE": "fresh"}))
        assert (tmp_path / "Dockerfile").read_text() == "FROM fresh\n"

    def test_missing_template(self, tmp_path):
        """Test a missing template file is a file error."""
        with pytest.raises(ProvisionFileError, match="not found"):
            render_stage_template(tmp_path, StageTemplate(), "Instance")

    def test_undefined_placeholder(self, tmp_path):
        """Test an undefined placeholder is a render error naming the stage."""
        (tmp_path / "Dockerfile.template").write_text("FROM ubuntu\nENV HOST {{ HOSTNAME }}\n")
        with pytest.raises(RenderError) as exc_info:
            render_stage_template(tmp_path, StageTemplate(), "Instance")
        assert "Stage: Instance" in str(exc_info.value)
        assert not (tmp_path / "Dockerfile").exists()

    def test_syntax_error(self, tmp_path):
        """Test a template syntax error reports the line number."""
        (tmp_path / "Dockerfile.template").write_text("FROM ubuntu\nENV HOST {{ HOSTNAME | }}\nEXPOSE 80\n")
        with pytest.raises(RenderError) as exc_info:
            render_stage_template(tmp_path, StageTemplate(values={"HOSTNAME": "x"}), "Instance")
        assert ", line 2" in str(exc_info.value)
