from __future__ import annotations
from typing import Any, Dict, List, Optional
from jinja2 import Template
from ..models.schemas import GroundedTheory, QualityAssessment
from .diagrams import paradigm_mermaid

HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<title>{{ title }}</title>
<script src="https://cdn.jsdelivr.net/npm/mermaid/dist/mermaid.min.js"></script>
<script>mermaid.initialize({ startOnLoad: true });</script>
<style>
body { font-family: -apple-system, BlinkMacSystemFont, Segoe UI, Roboto, Helvetica, Arial, sans-serif; padding: 24px; }
table { border-collapse: collapse; width: 100%; margin: 12px 0; }
th, td { border: 1px solid #ddd; padding: 8px; }
th { background: #f7f7f7; }
pre { background: #f9f9f9; padding: 12px; overflow: auto; white-space: pre-wrap; }
.badge { display: inline-block; padding: 2px 8px; border-radius: 12px; background: #eef; margin-right: 6px; }
.fail { background: #fee; }
</style>
</head>
<body>
<h1>{{ title }}</h1>
<h2>Stats</h2>
<ul>
{% for k,v in stats.items() %}
<li><b>{{k}}</b>: {{v}}</li>
{% endfor %}
</ul>

{% for name, qa in assessments.items() %}
<h2>{{ name }} <span class="badge {{ '' if qa.passes_quality_threshold else 'fail' }}">{{ '%.0f' % (qa.overall_quality * 100) }}%</span></h2>
<table>
<tr><th>criterion</th><th>score</th></tr>
{% for k, v in qa.criteria_scores.items() %}
<tr><td>{{k}}</td><td>{{ '%.2f' % v }}</td></tr>
{% endfor %}
</table>
{% if qa.recommendations %}
<ul>{% for r in qa.recommendations %}<li>{{ r }}</li>{% endfor %}</ul>
{% endif %}
{% endfor %}

{% if concept and concept.edges %}
<h2>Concept Map</h2>
<table>
<tr><th>theme</th><th>code</th><th>link</th></tr>
{% for e in concept.edges %}
<tr><td>{{ e["from"] }}</td><td>{{ e["to"] }}</td><td>{{ e["type"] }}</td></tr>
{% endfor %}
</table>
{% endif %}

{% if theory %}
<h2>{{ theory.title }}</h2>
<p><b>Core category</b>: {{ theory.core_category }}</p>
<h3>Paradigm Model (Mermaid)</h3>
<div class="mermaid">
{{ mermaid }}
</div>
<h3>Storyline</h3>
<pre>{{ theory.storyline }}</pre>
<h3>Propositions</h3>
<ol>{% for p in theory.theoretical_propositions %}<li>{{ p }}</li>{% endfor %}</ol>
<h3>Category Relationships</h3>
<table>
<tr><th>from</th><th>to</th><th>type</th><th>strength</th><th>explanation</th></tr>
{% for r in theory.category_relationships %}
<tr><td>{{r.source}}</td><td>{{r.target}}</td><td>{{r.type}}</td><td>{{r.strength}}</td><td>{{r.explanation}}</td></tr>
{% endfor %}
</table>
{% endif %}
</body>
</html>
"""

def render_html(
    stats: Dict[str, Any],
    theory: Optional[GroundedTheory] = None,
    assessments: Optional[Dict[str, QualityAssessment]] = None,
    title: str = "Qualitative Analysis Report",
    concept: Optional[Dict[str, List[Dict[str, Any]]]] = None,
) -> str:
    mermaid = paradigm_mermaid(theory.paradigm_model) if theory is not None else ""
    return Template(HTML, autoescape=True).render(
        title=title, stats=stats, theory=theory, assessments=assessments or {}, mermaid=mermaid,
        concept=concept or {},
    )

def emit_html(out_path: str, stats: Dict[str, Any], theory: Optional[GroundedTheory] = None,
              assessments: Optional[Dict[str, QualityAssessment]] = None,
              concept: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> str:
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(render_html(stats, theory, assessments, concept=concept))
    return out_path
