from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

HTML = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>AI Finance Hub</title>
  <style>
    body{font-family:system-ui,-apple-system,Segoe UI,Roboto,Arial;max-width:1100px;margin:0 auto;padding:0 16px;color:#111}
    .ticker{background:#111;color:#eee;padding:8px 12px;white-space:nowrap;overflow-x:auto;font-size:13px}
    .ticker span{margin-right:24px}
    .up{color:#0a7}
    .down{color:#c33}
    nav{display:flex;gap:8px;margin:16px 0;flex-wrap:wrap}
    nav button{padding:8px 14px;border-radius:10px;border:1px solid #333;background:#fff;cursor:pointer}
    nav button.active{background:#111;color:#fff}
    .card{border:1px solid #ddd;border-radius:12px;padding:16px;margin:12px 0}
    .muted{color:#666;font-size:12px}
    .tab{display:none}
    .tab.active{display:block}
    input{padding:6px 8px;border:1px solid #ccc;border-radius:8px}
    table{border-collapse:collapse;width:100%}
    th,td{border-bottom:1px solid #eee;padding:8px 6px;text-align:left}
    .high{color:#b00;font-weight:600}
    .mono{font-family:ui-monospace,SFMono-Regular,Menlo,Consolas,monospace}
  </style>
</head>
<body>
  <div class="ticker" id="ticker">loading quotes…</div>
  <h1>AI Finance Hub</h1>

  <nav>
    <button data-tab="news" class="active">News</button>
    <button data-tab="calendar">Calendar</button>
    <button data-tab="portfolio">Portfolio</button>
    <button data-tab="glossary">Glossary</button>
    <button data-tab="calc">Calculators</button>
  </nav>

  <section id="tab-news" class="tab active">
    <div class="muted" id="news-meta">—</div>
    <div id="news"></div>
  </section>

  <section id="tab-calendar" class="tab">
    <table>
      <thead><tr><th>Date</th><th>Time</th><th>Event</th><th>Prev</th><th>Fcst</th><th>Analysis</th></tr></thead>
      <tbody id="calendar"></tbody>
    </table>
  </section>

  <section id="tab-portfolio" class="tab">
    <div class="card">
      <input id="a-name" placeholder="Asset"/> <input id="a-price" type="number" placeholder="Entry price"/>
      <input id="a-qty" type="number" placeholder="Quantity"/> <button id="a-add">Add</button>
      <button id="a-analyze">AI review</button>
    </div>
    <table><tbody id="assets"></tbody></table>
    <div class="card" id="analysis">—</div>
  </section>

  <section id="tab-glossary" class="tab">
    <div class="card">
      <input id="term" placeholder="e.g. CPI"/> <button id="term-go">Look up</button>
      <p id="term-result"></p>
    </div>
  </section>

  <section id="tab-calc" class="tab">
    <div class="card">
      <b>Compound growth</b><br/>
      <input id="c-p" type="number" value="100000"/> principal
      <input id="c-r" type="number" value="7"/> % / year
      <input id="c-y" type="number" value="10"/> years
      <div class="mono" id="c-out"></div>
    </div>
    <div class="card">
      <b>Mortgage</b><br/>
      <input id="m-p" type="number" value="500000"/> principal
      <input id="m-r" type="number" value="4"/> % / year
      <input id="m-y" type="number" value="30"/> years
      <div class="mono" id="m-out"></div>
    </div>
    <div class="card">
      <b>ROI / CAGR</b><br/>
      <input id="r-i" type="number" value="10000"/> initial
      <input id="r-f" type="number" value="18000"/> final
      <input id="r-y" type="number" value="5"/> years
      <div class="mono" id="r-out"></div>
    </div>
    <div class="card">
      <b>Retirement target</b> (4% withdrawal)<br/>
      <input id="t-e" type="number" value="3000"/> monthly expense
      <div class="mono" id="t-out"></div>
    </div>
  </section>

<script>
const el = (id)=>document.getElementById(id);
const STORAGE_KEY = "ai_portfolio";
const money = (x)=>"$" + Math.round(x).toLocaleString();
const pos = (...xs)=>xs.every(x => Number(x) > 0);
// Remote and user-typed text is never trusted as markup.
const ESC = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#39;"};
const esc = (s)=>String(s ?? "").replace(/[&<>"']/g, c => ESC[c]);
const safeUrl = (u)=>/^https?:/i.test(String(u || "")) ? esc(u) : "#";

document.querySelectorAll("nav button").forEach(b => b.addEventListener("click", ()=>{
  document.querySelectorAll("nav button").forEach(x => x.classList.toggle("active", x === b));
  document.querySelectorAll(".tab").forEach(t => t.classList.toggle("active", t.id === "tab-" + b.dataset.tab));
}));

async function getJson(url, opts){
  const r = await fetch(url, opts);
  return r.json();
}

async function loadMarket(){
  try{
    const d = await getJson("/api/market");
    el("ticker").innerHTML = (d.data || []).map(q =>
      `<span>${esc(q.name)}: <b class="${q.change >= 0 ? "up" : "down"}">${esc(q.price)} (${q.change >= 0 ? "+" : ""}${esc(q.change)}%)</b></span>`
    ).join("");
  }catch(e){ console.error(e); }
}

async function loadNews(){
  const d = await getJson("/api/news");
  el("news-meta").textContent = `${d.timestamp || ""}${d.from_cache ? " · cached" : ""}${d.message ? " · " + d.message : ""}${d.error ? " · " + d.error : ""}`;
  el("news").innerHTML = (d.news || []).map(n => `
    <div class="card">
      <div class="muted">${esc(n.source)} · ${esc(n.time)} · ${esc(n.category)}</div>
      <h3><a href="${safeUrl(n.url)}" target="_blank" rel="noopener">${esc(n.title)}</a></h3>
      <p>${esc(n.summary)}</p>
      <p><i>${esc(n.ai_insight)}</i></p>
    </div>`).join("");
}

async function loadCalendar(){
  const d = await getJson("/api/calendar");
  el("calendar").innerHTML = (d.events || []).map(e => `
    <tr><td class="mono">${esc(e.date)}</td><td class="mono">${esc(e.time)}</td>
    <td class="${e.importance === "high" ? "high" : ""}">${esc(e.event)}</td>
    <td>${esc(e.previous)}</td><td>${esc(e.forecast)}</td><td>${esc(e.analysis)}</td></tr>`).join("");
}

function loadAssets(){ return JSON.parse(localStorage.getItem(STORAGE_KEY) || "[]"); }
function saveAssets(a){ localStorage.setItem(STORAGE_KEY, JSON.stringify(a)); renderAssets(); }
function renderAssets(){
  el("assets").innerHTML = loadAssets().map(a => `
    <tr><td>${esc(a.name)}</td><td class="mono">${esc(a.entry_price)}</td><td class="mono">${esc(a.quantity)}</td>
    <td><button data-id="${esc(a.id)}">remove</button></td></tr>`).join("");
  el("assets").querySelectorAll("button").forEach(b => b.addEventListener("click", ()=>{
    saveAssets(loadAssets().filter(a => a.id !== b.dataset.id));
  }));
}
el("a-add").addEventListener("click", ()=>{
  const name = el("a-name").value.trim(), price = Number(el("a-price").value), qty = Number(el("a-qty").value || 0);
  if(!name || !(price > 0)) return;
  saveAssets([...loadAssets(), {id: String(Date.now()), name, entry_price: price, quantity: qty}]);
  el("a-name").value = el("a-price").value = el("a-qty").value = "";
});
el("a-analyze").addEventListener("click", async ()=>{
  el("analysis").textContent = "analysing…";
  const d = await getJson("/api/news", {method:"POST", headers:{"Content-Type":"application/json"},
    body: JSON.stringify({type:"portfolio_analysis", portfolio: loadAssets()})});
  el("analysis").textContent = d.result || d.error || "—";
});

el("term-go").addEventListener("click", async ()=>{
  const term = el("term").value.trim();
  if(!term) return;
  el("term-result").textContent = "…";
  const d = await getJson("/api/news?term=" + encodeURIComponent(term));
  el("term-result").textContent = d.explanation || d.error || "—";
});

function recalc(){
  const [p, r, y] = ["c-p", "c-r", "c-y"].map(i => Number(el(i).value));
  el("c-out").textContent = pos(p, r, y) ? money(p * Math.pow(1 + r / 100, y)) : "";

  const [mp, mr, my] = ["m-p", "m-r", "m-y"].map(i => Number(el(i).value));
  if(pos(mp, mr, my)){
    const i = mr / 100 / 12, n = Math.round(my * 12), g = Math.pow(1 + i, n);
    const pay = g - 1 === 0 ? mp / n : mp * i * g / (g - 1);
    el("m-out").textContent = `${money(pay)} / month · total ${money(pay * n)}`;
  } else el("m-out").textContent = "";

  const [ri, rf, ry] = ["r-i", "r-f", "r-y"].map(i => Number(el(i).value));
  el("r-out").textContent = pos(ri, rf, ry)
    ? `ROI ${(100 * (rf - ri) / ri).toFixed(2)}% · CAGR ${(100 * (Math.pow(rf / ri, 1 / ry) - 1)).toFixed(2)}%` : "";

  const te = Number(el("t-e").value);
  el("t-out").textContent = pos(te) ? money(te * 12 / 0.04) : "";
}
document.querySelectorAll("#tab-calc input").forEach(i => i.addEventListener("input", recalc));

recalc();
renderAssets();
loadNews();
loadCalendar();
loadMarket();
setInterval(loadMarket, 60000);
</script>
</body>
</html>"""

@router.get("/", response_class=HTMLResponse)
def ui():
    return HTMLResponse(HTML)
