from string import Template

PAGE_TEMPLATE = Template(
    """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Markdown Preview</title>
  <link rel="stylesheet" href="https://fonts.googleapis.com/css?family=Roboto:400,400i,700&display=swap">
  <style>
    html {
      line-height: 1.5;
      font-size: 20px;
      color: #1a1a1a;
      background-color: #fdfdfd;
    }
    body {
      font-family: 'Roboto', sans-serif;
      margin: 0 auto;
      max-width: 36em;
      padding: 50px;
      hyphens: auto;
      overflow-wrap: break-word;
      text-rendering: optimizeLegibility;
    }
    @media (max-width: 600px) {
      body { font-size: 0.9em; padding: 1em; }
      h1 { font-size: 1.8em; }
    }
    a, a:visited { color: #1a1a1a; }
    img { max-width: 100%; }
    h1, h2, h3, h4, h5, h6 { margin-top: 1.4em; }
    blockquote {
      margin: 1em 0 1em 1.7em;
      padding-left: 1em;
      border-left: 2px solid #e6e6e6;
      color: #606060;
    }
    code {
      font-family: Menlo, Monaco, 'Lucida Console', Consolas, monospace;
      font-size: 85%;
      white-space: pre-wrap;
    }
    pre { margin: 1em 0; overflow: auto; }
    table { margin: 1em 0; border-collapse: collapse; width: 100%; }
    th { border-top: 1px solid #1a1a1a; padding: 0.25em 0.5em; }
    td { padding: 0.125em 0.5em 0.25em 0.5em; }
    hr { background-color: #1a1a1a; border: none; height: 1px; margin: 1em 0; }
  </style>
</head>
<body>
  <div id="sse-data">Preview Server booting up</div>
  <script>
    const event_source = new EventSource('$events_url');
    event_source.onmessage = function(event) {
      const data_element = document.getElementById('sse-data');
      const bytes = Uint8Array.from(atob(event.data), c => c.charCodeAt(0));
      data_element.innerHTML = new TextDecoder().decode(bytes);
    };
    event_source.onerror = function(event) {
      const data_element = document.getElementById('sse-data');
      data_element.innerHTML = 'Preview server is down';
    };
  </script>
</body>
</html>
"""
)


def events_url(host: str, port: int, path: str) -> str:
    return f"http://{host}:{port}{path}"


def render_page(url: str) -> str:
    """Fill the viewer page with the URL of the event stream."""
    return PAGE_TEMPLATE.substitute(events_url=url)
