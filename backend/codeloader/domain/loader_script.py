import json

from .invariants.exceptions import InvariantViolation
from .invariants.targets import assert_location, assert_target_kind

# Webflow rejects inline scripts over 2000 characters
LOADER_MAX_BYTES = 2000
DELIVERY_PATH = "/api/v1/code-loader"
MARKER_CLASS = "codeloader-injected"

_TEMPLATE = (
    "(function(){"
    "var c={id:%(id)s,type:%(type)s,location:%(location)s},"
    "m=%(marker)s,k=c.type+':'+c.id+':'+c.location,w=window.__codeloader=window.__codeloader||{};"
    "if(w[k]||document.querySelector('.'+m+'[data-codeloader=\"'+k+'\"]'))return;w[k]=1;"
    "fetch(%(url)s,{method:'POST',headers:{'Content-Type':'application/json'},body:JSON.stringify(c)})"
    ".then(function(r){if(!r.ok)throw new Error('Load failed: '+r.status);return r.json()})"
    ".then(function(d){var t=c.location==='head'?document.head:document.body;"
    "if(d.css){var s=document.createElement('style');s.textContent=d.css;document.head.appendChild(s)}"
    "if(d.html){var h=document.createElement('div');h.className=m;h.setAttribute('data-codeloader',k);"
    "h.innerHTML=d.html;t.appendChild(h)}"
    "if(d.js){var j=document.createElement('script');j.textContent=d.js;t.appendChild(j)}})"
    ".catch(function(e){console.error('codeloader error:',e)})"
    "})();"
)


def _js_literal(value) -> str:
    # JSON is valid JS; escaping "</" keeps the literal safe inside <script>
    return json.dumps(value).replace("</", "<\\/")


def delivery_url(endpoint_base: str) -> str:
    return endpoint_base.rstrip("/") + DELIVERY_PATH


def generate_loader_script(target_id, target_kind: str, location: str, endpoint_base: str) -> str:
    """
    Render the bootstrap IIFE registered with Webflow for one target/location.

    At page render it POSTs {id, type, location} to the delivery endpoint
    and injects the returned css/html/js. Failures only reach
    console.error so the host page never breaks.
    """
    assert_target_kind(target_kind)
    assert_location(location)
    if not endpoint_base:
        raise InvariantViolation("Delivery endpoint base URL is not configured.")

    source = _TEMPLATE % {
        "id": _js_literal(str(target_id)),
        "type": _js_literal(target_kind),
        "location": _js_literal(location),
        "marker": _js_literal(MARKER_CLASS),
        "url": _js_literal(delivery_url(endpoint_base)),
    }

    if len(source.encode("utf-8")) > LOADER_MAX_BYTES:
        raise InvariantViolation(
            f"Loader script is {len(source.encode('utf-8'))} bytes; limit is {LOADER_MAX_BYTES}."
        )
    return source
