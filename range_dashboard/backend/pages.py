# backend/pages.py
"""Server-rendered HTML for the browser-facing routes."""
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Optional

from . import config
from .metrics import score_band
from .state import Metrics

STYLE = """
body{font-family:system-ui,sans-serif;margin:0;background:#0f1115;color:#e6e6e6}
header{padding:12px 24px;background:#171a21;display:flex;gap:16px;align-items:center}
header a{color:#e6e6e6;text-decoration:none}
main{max-width:1100px;margin:0 auto;padding:24px}
table{width:100%;border-collapse:collapse}
th,td{padding:8px;border-bottom:1px solid #2a2f3a;text-align:center}
.card{background:#171a21;border-radius:8px;padding:16px;margin-bottom:16px}
.grid{display:grid;grid-template-columns:repeat(auto-fit,minmax(180px,1fr));gap:12px}
.stat{font-size:28px;font-weight:bold;font-family:monospace}
.muted{color:#8a93a6;font-size:13px}
.badge{padding:2px 8px;border-radius:8px;font-size:12px}
.Excellent{background:#1f9d55}.Good{background:#d6b300;color:#000}.Needs{background:#c0392b}
button{padding:10px 18px;border:0;border-radius:6px;margin-right:8px;cursor:pointer}
"""


def _layout(title: str, body: str) -> str:
    return f"""<!doctype html>
<html><head>
<meta charset="utf-8"/>
<title>{escape(title)} - Range Dashboard</title>
<style>{STYLE}</style>
</head><body>
<header><strong>Range Dashboard</strong><a href="/dashboard">Dashboard</a><a href="/session/live">Live Session</a></header>
<main>{body}</main>
</body></html>"""


def format_time(seconds: float) -> str:
    seconds = int(seconds or 0)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_date(iso: str) -> str:
    try:
        return datetime.fromisoformat(iso).strftime("%A, %B %d, %Y")
    except (TypeError, ValueError):
        return iso or ""


def landing_page() -> str:
    body = """
<div class="card" style="text-align:center;padding:48px">
  <h1>Track every shot.</h1>
  <p class="muted">Live shot detection from your range camera, group statistics and coaching after every session.</p>
  <p><a href="/dashboard"><button>Open Dashboard</button></a><a href="/session/live"><button>Start Live Session</button></a></p>
</div>"""
    return _layout("Welcome", body)


def dashboard_page(sessions: List[Dict[str, Any]], total: int) -> str:
    rows = []
    for s in sessions:
        m = Metrics.from_dict(s["metrics"])
        band = score_band(m, s["shot_count"])
        rows.append(
            "<tr>"
            f"<td>{escape(format_date(s['date']))}</td>"
            f"<td>{s['shot_count']}</td>"
            f"<td>{m.group_size:.1f}</td>"
            f"<td>{m.cadence:.1f}</td>"
            f'<td><span class="badge {band.split()[0]}">{escape(band)}</span></td>'
            f'<td><a href="/session/{s["id"]}">View Report</a></td>'
            "</tr>"
        )
    if not rows:
        rows.append('<tr><td colspan="6" class="muted">No sessions yet. Start a live session to record one.</td></tr>')

    body = f"""
<h1>Dashboard</h1>
<p class="muted">Review your past performance and start new shooting sessions. {total} session(s) recorded.</p>
<p><a href="/session/live"><button>Start New Session</button></a></p>
<div class="card"><h3>Session History</h3>
<table><thead><tr><th>Date</th><th>Total Shots</th><th>Group Size (px)</th><th>Cadence (SPM)</th><th>Performance</th><th>Actions</th></tr></thead>
<tbody>{''.join(rows)}</tbody></table></div>"""
    return _layout("Dashboard", body)


def target_svg(shots: List[Dict[str, Any]], center: Optional[Dict[str, float]] = None, size: int = 400) -> str:
    """Scatter of the shots around the group center, with reference rings."""
    cx = (center or {}).get("x", 0.0)
    cy = (center or {}).get("y", 0.0)
    extent = max([abs(s["x"] - cx) for s in shots] + [abs(s["y"] - cy) for s in shots] + [0.0])
    half = max(float(config.TARGET_RANGE), extent * 1.2)

    def pos(v: float, c: float) -> float:
        return (v - c + half) / (2 * half) * size

    parts = [f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 {size} {size}">',
             f'<rect width="{size}" height="{size}" fill="#171a21"/>']
    for frac in (1.0, 0.8, 0.6, 0.4, 0.2):
        parts.append(f'<circle cx="{size / 2}" cy="{size / 2}" r="{frac * size / 2:.1f}" '
                     'fill="none" stroke="#555" stroke-dasharray="4 4"/>')
    parts.append(f'<line x1="0" y1="{size / 2}" x2="{size}" y2="{size / 2}" stroke="#333"/>')
    parts.append(f'<line x1="{size / 2}" y1="0" x2="{size / 2}" y2="{size}" stroke="#333"/>')
    for i, s in enumerate(shots, start=1):
        parts.append(f'<circle cx="{pos(s["x"], cx):.1f}" cy="{pos(s["y"], cy):.1f}" r="5" fill="#ff5a36">'
                     f'<title>Shot {i}: ({s["x"]:.1f}, {s["y"]:.1f})</title></circle>')
    parts.append("</svg>")
    return "".join(parts)


def report_page(session: Dict[str, Any], advice: List[str]) -> str:
    m = Metrics.from_dict(session["metrics"])
    shots = session["shots"]
    stats = [
        ("Group Size", f"{m.group_size:.1f}", "px", "Widest spread between two shots"),
        ("Group Offset", f"{m.group_offset:.1f}", "px", "Mean point of impact to target center"),
        ("Consistency", f"{m.consistency:.1f}", "px", "Spread of shots around the group center"),
        ("Cadence", f"{m.cadence:.1f}", "SPM", "Shots per minute"),
        ("Session Time", format_time(m.time), "", "Total duration of session"),
        ("Total Shots", str(len(shots)), "", "Total shots fired in session"),
    ]
    cards = "".join(
        f'<div class="card"><div class="muted">{escape(t)}</div>'
        f'<div class="stat">{escape(v)}<span class="muted"> {escape(u)}</span></div>'
        f'<div class="muted">{escape(d)}</div></div>'
        for t, v, u, d in stats
    )
    tips = "".join(f"<li>{escape(t)}</li>" for t in advice) or '<li class="muted">No coaching advice available.</li>'

    body = f"""
<p><a href="/dashboard">&larr; Back to Dashboard</a></p>
<h1>Performance Report</h1>
<p class="muted">Analysis for session on {escape(format_date(session['date']))}</p>
<div class="grid">{cards}</div>
<div class="grid">
  <div class="card"><h3>Shot Distribution</h3>{target_svg(shots, session['metrics'].get('group_center'))}</div>
  <div class="card"><h3>Coaching Tips</h3><ol>{tips}</ol></div>
</div>"""
    return _layout("Performance Report", body)


def live_page() -> str:
    body = """
<h1>Live Session</h1>
<p class="muted">Real-time shooting analysis. New shots are detected automatically.</p>
<div class="grid">
  <div class="card"><h3>Live Camera Feed</h3><img id="feed" style="width:100%" alt="Camera feed starting..."/></div>
  <div class="card"><h3>Latest Analysis</h3><img id="analysis" style="width:100%" alt="Waiting for first analysis..."/></div>
</div>
<div class="card"><h3>Mid-Session Report</h3>
  <div class="grid">
    <div><div class="stat" id="time">00:00</div><div class="muted">Time Elapsed</div></div>
    <div><div class="stat" id="shots">0</div><div class="muted">Shots Fired</div></div>
    <div><div class="stat" id="group">0.0</div><div class="muted">Group Size (px)</div></div>
    <div><div class="stat" id="cadence">0.0</div><div class="muted">Cadence (SPM)</div></div>
  </div>
  <p>
    <button onclick="call('start')">Start</button>
    <button onclick="call('pause')">Pause</button>
    <button onclick="call('resume')">Resume</button>
    <button onclick="if(confirm('End the session and analyze it?'))call('end')">End &amp; Analyze</button>
  </p>
  <p id="msg" class="muted"></p>
</div>
<script>
function fmt(s){s=Math.floor(s||0);return String(Math.floor(s/60)).padStart(2,'0')+':'+String(s%60).padStart(2,'0');}
function render(live){
  if(!live)return;
  document.getElementById('time').textContent=fmt(live.elapsed);
  document.getElementById('shots').textContent=live.shot_count;
  document.getElementById('group').textContent=live.metrics.group_size.toFixed(1);
  document.getElementById('cadence').textContent=live.metrics.cadence.toFixed(1);
  if(live.last_frame)document.getElementById('analysis').src='/frames/'+live.last_frame;
}
async function call(action){
  const r=await fetch('/api/live/'+action,{method:'POST',headers:{'Content-Type':'application/json'},body:'{}'});
  const d=await r.json();
  if(!d.ok){document.getElementById('msg').textContent=d.error;return;}
  if(action==='end'&&d.session_id){location.href='/session/'+d.session_id;}
}
const ws=new WebSocket((location.protocol==='https:'?'wss://':'ws://')+location.host+'/ws');
ws.onmessage=(e)=>{const m=JSON.parse(e.data);
  if(m.type==='ended'&&m.session_id){location.href='/session/'+m.session_id;}
  if(m.type==='shots'){document.getElementById('msg').textContent=m.new.length+' new shot(s) detected!';}
  render(m.live);};
setInterval(async()=>{
  const r=await fetch('/api/live');const d=await r.json();
  if(d.ok){render(d.live);document.getElementById('feed').src='/api/live/frame?t='+Date.now();}
},1000);
</script>"""
    return _layout("Live Session", body)


def not_found_page() -> str:
    body = """
<div class="card" style="text-align:center;padding:48px">
  <h1>404</h1><p class="muted">That session could not be found.</p>
  <p><a href="/dashboard">Back to Dashboard</a></p>
</div>"""
    return _layout("Not Found", body)
