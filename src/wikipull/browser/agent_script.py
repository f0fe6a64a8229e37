"""JavaScript for the in-page agent.

The script is installed with ``page.add_init_script`` so every new
document gets a fresh agent. It exposes ``window.__wikipullAgent.handle``
for requests and announces itself through the ``__wikipullAnnounce``
binding once the DOM is ready. Only the top frame runs it.
"""

AGENT_GLOBAL = "__wikipullAgent"
ANNOUNCE_BINDING = "__wikipullAnnounce"

# Evaluated with the request payload as its argument
DISPATCH_EXPRESSION = f"""
payload => window.{AGENT_GLOBAL}
    ? window.{AGENT_GLOBAL}.handle(payload)
    : {{ __noReceiver: true }}
"""

AGENT_SCRIPT = r"""
(() => {
  if (window.top !== window || window.__wikipullAgent) {
    return;
  }

  const NAV_CONTAINERS = 'nav, aside, .sidebar, [class*="sidebar"], [class*="Sidebar"], [class*="menu"], [class*="drawer"]';
  const TOPIC_CONTAINERS = 'aside, nav, [class*="border-r"], [class*="sidebar"], [class*="drawer"]';
  const NAVIGATIONAL = 'nav, aside, header, footer, .sidebar, .menu, [class*="sidebar"], [class*="nav-"]';
  const STRUCTURAL = "p, pre, code, table, ul, ol, h1, h2, h3, h4, h5, h6, svg[id^='mermaid-']";
  const SKIPPED_TITLES = ['logout', 'sign out', 'settings', 'profile', 'home'];

  const textOf = (element) => {
    const raw = (element.textContent || '').replace(/\s+/g, ' ').trim();
    if (raw) return raw;
    const label = element.getAttribute('aria-label') || element.getAttribute('title') || element.getAttribute('data-title');
    return label ? label.trim() : '';
  };

  const resolve = (href) => {
    try {
      return new URL(href, window.location.href);
    } catch (e) {
      return null;
    }
  };

  const urlKey = (url) => {
    const path = url.pathname.replace(/\/$/, '') || '/';
    return `${url.origin}${path}${url.search}${url.hash}`;
  };

  const contentContainer = () => (
    document.querySelector('.container > div:nth-child(2) .prose') ||
    document.querySelector('.container > div:nth-child(2) .prose-custom') ||
    document.querySelector('.container > div:nth-child(2)') ||
    document.querySelector('main .prose') ||
    document.querySelector('article .prose') ||
    document.querySelector('.prose') ||
    document.querySelector('.markdown-body') ||
    document.querySelector('.wiki-content')
  );

  const pageTitle = () => (
    document.querySelector('main h1')?.textContent?.trim() ||
    document.querySelector('h1')?.textContent?.trim() ||
    ''
  );

  const expandSections = (root) => {
    const toggles = Array.from(root.querySelectorAll(
      'button[aria-expanded="false"], [role="button"][aria-expanded="false"], details:not([open]) > summary'
    )).filter(el => el.tagName !== 'A');
    toggles.forEach(toggle => {
      if (toggle.tagName === 'SUMMARY') {
        const details = toggle.closest('details');
        if (details) details.open = true;
      } else if (typeof toggle.click === 'function') {
        toggle.click();
      }
    });
    return toggles.length;
  };

  const topicButtons = () => {
    const buttons = [];
    const seen = new Set();
    document.querySelectorAll(TOPIC_CONTAINERS).forEach(container => {
      expandSections(container);
      container.querySelectorAll('ul li button').forEach(button => {
        if (textOf(button) && !seen.has(button)) {
          seen.add(button);
          buttons.push(button);
        }
      });
    });
    if (buttons.length) return buttons;
    return Array.from(document.querySelectorAll('ul li button')).filter(button => textOf(button));
  };

  const metrics = () => {
    const container = contentContainer();
    if (!container) {
      return { hasContainer: false, textLength: 0, meaningfulCount: 0, hasMermaid: false };
    }
    let textLength = (container.textContent || '').trim().length;
    if (container.querySelector('nav, aside, .sidebar')) {
      textLength = 0;
      const walker = document.createTreeWalker(container, NodeFilter.SHOW_TEXT, {
        acceptNode: (node) => {
          const parent = node.parentElement;
          if (!parent || parent.closest(NAVIGATIONAL)) return NodeFilter.FILTER_REJECT;
          if (['SCRIPT', 'STYLE', 'NOSCRIPT'].includes(parent.tagName)) return NodeFilter.FILTER_REJECT;
          return NodeFilter.FILTER_ACCEPT;
        }
      });
      while (walker.nextNode()) {
        textLength += walker.currentNode.textContent.trim().length;
      }
    }
    const meaningfulCount = Array.from(container.querySelectorAll(STRUCTURAL))
      .filter(el => !el.closest(NAVIGATIONAL)).length;
    const hasMermaid = Array.from(container.querySelectorAll("svg[id^='mermaid-'], pre code.language-mermaid"))
      .some(el => !el.closest(NAVIGATIONAL));
    return { hasContainer: true, textLength, meaningfulCount, hasMermaid };
  };

  const signature = () => {
    const container = contentContainer();
    if (!container) {
      return { heading: '', snippet: '', textLength: 0, hash: window.location.hash || '' };
    }
    const text = (container.textContent || '').replace(/\s+/g, ' ').trim();
    return {
      heading: container.querySelector('h1, h2, h3')?.textContent?.trim() || '',
      snippet: text.slice(0, 240),
      textLength: text.length,
      hash: window.location.hash || ''
    };
  };

  const sidebarLinks = async () => {
    const navs = Array.from(document.querySelectorAll(NAV_CONTAINERS));
    let expanded = 0;
    navs.forEach(nav => { expanded += expandSections(nav); });
    if (expanded > 0) {
      await new Promise(done => setTimeout(done, 250));
    }
    const links = navs.flatMap(nav => Array.from(nav.querySelectorAll('a[href]')));
    if (links.length) return links;
    return Array.from(document.querySelectorAll('[class*="border-r"] ul li a[href]'));
  };

  const extractAllPages = async ({ topicHosts = [] } = {}) => {
    const headTitle = (document.title || '').trim();
    const currentTitle = pageTitle();
    const here = new URL(window.location.href);

    const topicSite = topicHosts.some(host => window.location.hostname.includes(host));
    const buttons = topicSite ? topicButtons() : [];
    if (buttons.length) {
      const pages = buttons.map((button, index) => ({
        url: window.location.href,
        title: textOf(button) || `Topic ${index + 1}`,
        topicIndex: index
      }));
      return { success: true, pages, headTitle, currentTitle };
    }

    const unique = new Map();
    (await sidebarLinks()).forEach(link => {
      const href = link.getAttribute('href') || '';
      if (!href || href.startsWith('mailto') || href.startsWith('javascript')) return;
      const url = resolve(href);
      if (!url || url.origin !== here.origin) return;
      const fallback = url.hash ? `Topic-${url.hash.slice(1)}` : '';
      const title = textOf(link) || fallback;
      if (!title || SKIPPED_TITLES.includes(title.toLowerCase())) return;
      const key = urlKey(url);
      if (!unique.has(key)) {
        unique.set(key, { url: url.href, title });
      }
    });

    let pages = Array.from(unique.values());
    const currentKey = urlKey(here);
    if (!pages.some(page => urlKey(new URL(page.url)) === currentKey)) {
      pages = [{ url: here.href, title: currentTitle || 'Untitled' }, ...pages];
    }
    return { success: true, pages, headTitle, currentTitle };
  };

  const extractContent = () => {
    const container = contentContainer();
    if (!container) {
      return { success: false, error: 'No content container found on the page.' };
    }
    const clone = container.cloneNode(true);
    clone.querySelectorAll("svg[id^='mermaid-']").forEach(svg => {
      const note = document.createElement('p');
      note.textContent = '[diagram]';
      svg.replaceWith(note);
    });
    const title =
      document.querySelector('.container > div:nth-child(1) a[data-selected="true"]')?.textContent?.trim() ||
      pageTitle();
    return {
      success: true,
      html: clone.innerHTML,
      title,
      headTitle: (document.title || '').trim(),
      currentUrl: window.location.href
    };
  };

  const selectTopic = async ({ index, title }) => {
    const buttons = topicButtons();
    if (!buttons.length) {
      return { success: false, error: 'No topic buttons found.' };
    }
    const wanted = typeof title === 'string' ? title.trim() : '';
    let target = null;
    if (wanted) {
      target = buttons.find(button => textOf(button) === wanted) ||
        buttons.find(button => textOf(button).includes(wanted)) || null;
    }
    if (!target && Number.isInteger(index) && index >= 0 && index < buttons.length) {
      target = buttons[index];
    }
    if (!target) {
      return { success: false, error: 'Unable to resolve topic button.' };
    }

    const expected = textOf(target);
    const startHash = window.location.hash;
    if (typeof target.scrollIntoView === 'function') target.scrollIntoView({ block: 'center' });
    target.click();

    const deadline = Date.now() + 2500;
    while (Date.now() < deadline) {
      if (window.location.hash && window.location.hash !== startHash) break;
      const headings = Array.from(document.querySelectorAll('h1, h2, h3, h4, h5, h6'));
      if (expected && headings.some(h => (h.textContent || '').trim() === expected)) break;
      if (target.getAttribute('aria-selected') === 'true' || target.getAttribute('aria-current') === 'true' ||
          target.classList.contains('active') || target.classList.contains('selected')) break;
      await new Promise(done => setTimeout(done, 120));
    }
    return { success: true, selectedIndex: buttons.indexOf(target), selectedTitle: expected };
  };

  const handlers = {
    extractAllPages,
    extractContent,
    selectTopic,
    readiness: () => ({ currentUrl: window.location.href, metrics: metrics(), signature: signature() })
  };

  window.__wikipullAgent = {
    async handle(payload) {
      const handler = handlers[payload && payload.action];
      if (!handler) {
        return { success: false, error: `Unknown action: ${payload && payload.action}` };
      }
      try {
        return await handler(payload);
      } catch (error) {
        return { success: false, error: error && error.message ? error.message : String(error) };
      }
    }
  };

  const announce = () => {
    if (typeof window.__wikipullAnnounce === 'function') {
      window.__wikipullAnnounce(window.location.href).catch(() => {});
    }
  };

  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', announce, { once: true });
  } else {
    announce();
  }
})();
"""
