from jinja2 import Environment, exceptions


def required_filter(value, var_name=""):
    """Jinja2 filter: raises an error if value is not provided or is falsy."""
    if value is None or (hasattr(value, "__len__") and len(value) == 0):
        raise exceptions.TemplateRuntimeError(f"Required parameter '{var_name or 'unknown'}' was not provided!")
    return value


def quote_identifier_filter(value):
    """Jinja2 filter: bracket-quote each part of a (possibly schema-qualified) name."""
    required_filter(value, "identifier")
    parts = []
    for part in str(value).split("."):
        if part.startswith("[") and part.endswith("]"):
            parts.append(part)
        else:
            parts.append("[" + part.replace("]", "]]") + "]")
    return ".".join(parts)


class SQLTemplates:
    """Render SQL Server statements used by the database service."""

    TEMPLATES = [
        {
            "dialect": "sqlserver",
            "file_name": "select_all_from_table.sql.jinja",
            "file_contents": "SELECT *\nFROM {{ table_name | required('table_name') | quote_identifier }};",
        },
        {
            "dialect": "sqlserver",
            "file_name": "get_table_row_count.sql.jinja",
            "file_contents": "SELECT COUNT_BIG(*) AS row_count\nFROM {{ table_name | required('table_name') | quote_identifier }};",
        },
        {
            "dialect": "sqlserver",
            "file_name": "check_procedure_exists.sql.jinja",
            "file_contents": "SELECT COUNT(1)\nFROM INFORMATION_SCHEMA.ROUTINES\nWHERE ROUTINE_TYPE = 'PROCEDURE'\nAND ROUTINE_NAME = ?\nAND ROUTINE_SCHEMA != 'sys';",
        },
        {
            "dialect": "sqlserver",
            "file_name": "exec_procedure.sql.jinja",
            "file_contents": "EXEC {{ procedure_name | required('procedure_name') | quote_identifier }}\n{%- for name in parameter_names %} {{ name }} = ?{% if not loop.last %},{% endif %}{%- endfor %};",
        },
        {
            "dialect": "sqlserver",
            "file_name": "test_connection.sql.jinja",
            "file_contents": "SELECT 1;",
        },
    ]

    def __init__(self, dialect: str = "sqlserver"):
        self.dialect = dialect
        # Use a Jinja2 Environment to add custom filters
        self.env = Environment()
        self.env.filters["required"] = lambda value, var_name="": required_filter(value, var_name)
        self.env.filters["quote_identifier"] = quote_identifier_filter

    def get_template(self, template_name: str) -> str:
        """Get the SQL template for the configured dialect."""
        template = next(
            (
                t["file_contents"]
                for t in self.TEMPLATES
                if t["file_name"] == f"{template_name}.sql.jinja" and t["dialect"] == self.dialect
            ),
            None,
        )
        if not template:
            raise FileNotFoundError(f"Template {template_name} for dialect {self.dialect} not found.")
        return template

    def render(self, template_name: str, **kwargs) -> str:
        """Render a SQL template with the given parameters."""
        template = self.env.from_string(self.get_template(template_name))
        return template.render(**kwargs)
