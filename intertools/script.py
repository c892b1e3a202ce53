"""Click-to-chat browser script served at ``/chat.js``.

The script is self-contained: it draws a floating button and, on click, posts
either the visitor's text selection or a page-content snippet to
``/api/messages``.
"""
import json

PAGE_SNIPPET_CHARS = 1000

_TEMPLATE = """(function() {
  'use strict';

  var INTERTOOLS_URL = %(base_url)s;
  var PROJECT_ID = %(project_id)s;
  var THEME = %(theme)s;
  var SNIPPET_CHARS = %(snippet_chars)d;

  function createChatButton() {
    var button = document.createElement('div');
    button.id = 'intertools-chat-button';
    button.innerHTML = '\\uD83D\\uDCAC';
    button.style.cssText = [
      'position: fixed', 'bottom: 20px', 'right: 20px', 'width: 60px', 'height: 60px',
      'background: ' + (THEME === 'dark' ? '#374151' : '#3B82F6'), 'color: white',
      'border-radius: 50%%', 'display: flex', 'align-items: center', 'justify-content: center',
      'cursor: pointer', 'font-size: 24px', 'box-shadow: 0 4px 12px rgba(0, 0, 0, 0.15)',
      'z-index: 10000', 'transition: all 0.3s ease'
    ].join(';');
    button.addEventListener('mouseover', function() { button.style.transform = 'scale(1.1)'; });
    button.addEventListener('mouseout', function() { button.style.transform = 'scale(1)'; });
    button.addEventListener('click', handleChatClick);
    document.body.appendChild(button);
  }

  function getPageSnippet() {
    var main = document.querySelector('main') ||
               document.querySelector('[role="main"]') ||
               document.querySelector('.main-content') ||
               document.querySelector('#main') ||
               document.body;
    if (!main) return '';
    var text = main.textContent || main.innerText || '';
    return text.substring(0, SNIPPET_CHARS).trim();
  }

  function handleChatClick() {
    var selection = window.getSelection();
    var selectedText = selection ? selection.toString().trim() : '';
    sendToInterTools({
      htmlSnippet: selectedText || getPageSnippet(),
      url: window.location.href,
      projectId: PROJECT_ID,
      metadata: {
        title: document.title,
        timestamp: new Date().toISOString(),
        userAgent: navigator.userAgent,
        hasSelection: !!selectedText
      }
    });
    showFeedback(selectedText ? 'Selected text sent to chat!' : 'Page context sent to chat!');
  }

  function sendToInterTools(payload) {
    fetch(INTERTOOLS_URL + '/api/messages', {
      method: 'POST',
      headers: { 'Content-Type': 'application/json' },
      body: JSON.stringify(payload)
    }).then(function(response) {
      if (!response.ok) throw new Error('HTTP ' + response.status);
      return response.json();
    }).then(function(result) {
      console.log('InterTools: Message sent successfully', result);
    }).catch(function(error) {
      console.error('InterTools: Failed to send message', error);
      showFeedback('Failed to send to chat. Please try again.', 'error');
    });
  }

  function showFeedback(message, type) {
    var feedback = document.createElement('div');
    feedback.style.cssText = [
      'position: fixed', 'bottom: 100px', 'right: 20px',
      'background: ' + (type === 'error' ? '#EF4444' : '#10B981'), 'color: white',
      'padding: 12px 16px', 'border-radius: 8px', 'font-size: 14px',
      'font-family: -apple-system, BlinkMacSystemFont, sans-serif',
      'box-shadow: 0 4px 12px rgba(0, 0, 0, 0.15)', 'z-index: 10001',
      'max-width: 250px', 'word-wrap: break-word'
    ].join(';');
    feedback.textContent = message;
    document.body.appendChild(feedback);
    setTimeout(function() {
      if (feedback.parentNode) feedback.parentNode.removeChild(feedback);
    }, 3000);
  }

  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', createChatButton);
  } else {
    createChatButton();
  }
})();
"""


def _js_string(value: str) -> str:
    # json.dumps yields a valid JS literal; "</" is split so the value cannot close a <script> tag
    return json.dumps(value).replace("</", "<\\/")


def render_chat_script(base_url: str, project_id: str, theme: str = "light") -> str:
    return _TEMPLATE % {
        "base_url": _js_string(base_url.rstrip("/")),
        "project_id": _js_string(project_id),
        "theme": _js_string(theme),
        "snippet_chars": PAGE_SNIPPET_CHARS,
    }
