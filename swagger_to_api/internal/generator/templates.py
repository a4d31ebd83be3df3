class Templates:
    """Шаблоны для генерации файлов"""

    banner = [
        "/* eslint-disable */",
        "// Generated by swagger-to-api. Declarations below are merged on regeneration.",
    ]

    types_prelude = [
        "export type PlainObject = { [key: string]: any };",
        "export type Map<T0 extends string | number | symbol, T1> = Record<T0, T1>;",
        "export type BaseRequestDTO = { [key: string]: any };",
    ]

    axios_import = "import type { AxiosRequestConfig } from 'axios';"

    apis_imports = [
        axios_import,
        "import $http from '../request';",
        "import * as Types from './types';",
    ]

    index = """/* eslint-disable */
// Generated by swagger-to-api.
import * as Types from './types';
import * as APIs from './apis';

export { Types };
export * from './apis';

export default { Types, ...APIs };
"""

    request = r"""import axios, { AxiosRequestConfig, Method, AxiosInstance, AxiosResponse } from 'axios';

type TSObject = Record<string, any>;
type Code = string | number;

export type HttpConfig = {
  baseURL?: string;
  timeout?: number;
  withCredentials?: boolean;
  getAuthorization?: () => string | undefined;
  authWhiteList?: Array<string | RegExp>;
  unwrapResponse?: boolean;
  successCodes?: Code[];
  codeField?: string;
  messageField?: string;
  dataField?: string;
};

export const httpConfig: HttpConfig = {
  unwrapResponse: false,
  successCodes: [0, 200, '0', '200'],
  codeField: 'code',
  messageField: 'message',
  dataField: 'data',
};

const PLACEHOLDER_REGEX = /\{[A-Za-z\d_-]+\}/g;

function buildRestfulUrl(url: string, payload: TSObject): { url: string; params: TSObject } {
  const mapping: TSObject = Object.assign({}, payload);

  url.match(PLACEHOLDER_REGEX)?.forEach((placeholder: string) => {
    const name = placeholder.replace(/[{}]/g, '');
    const raw = mapping[name] ?? '';
    url = url.replace(placeholder, encodeURIComponent(String(raw)));
    delete mapping[name];
  });

  return { url, params: mapping };
}

function shouldAttachAuth(url: string): boolean {
  const list = httpConfig.authWhiteList || [];
  if (list.length === 0) return true;
  return !list.some((rule) => (typeof rule === 'string' ? url.includes(rule) : rule.test(url)));
}

function unwrapData(payload: any): any {
  if (!httpConfig.unwrapResponse) return payload;

  const codeField = httpConfig.codeField || 'code';
  const messageField = httpConfig.messageField || 'message';
  const dataField = httpConfig.dataField || 'data';
  const success = new Set<Code>(httpConfig.successCodes || [0, 200, '0', '200']);

  const code = payload?.[codeField];
  if (code === undefined || success.has(code)) {
    return payload?.[dataField];
  }

  const err: any = new Error(String(payload?.[messageField] ?? 'Request failed'));
  err.payload = payload;
  err.code = code;
  throw err;
}

function createClient(): AxiosInstance {
  const instance = axios.create({
    baseURL: httpConfig.baseURL,
    timeout: httpConfig.timeout,
    withCredentials: httpConfig.withCredentials,
  });

  instance.interceptors.request.use((config) => {
    const auth = httpConfig.getAuthorization?.();
    if (auth && shouldAttachAuth(String(config.url || ''))) {
      const headers: TSObject = Object.assign({}, (config.headers || {}) as any);
      if (headers.Authorization == null) headers.Authorization = auth;
      config.headers = headers as any;
    }
    return config;
  });

  return instance;
}

const client = createClient();

async function doRequest<V>(cfg: AxiosRequestConfig): Promise<V> {
  const ret: AxiosResponse = await client(cfg);
  return unwrapData(ret.data) as V;
}

export default {
  async run<T, V>(
    url: string,
    method: Method = 'POST',
    payload?: T,
    axiosConfig?: AxiosRequestConfig
  ): Promise<V> {
    const cfg: AxiosRequestConfig = Object.assign({}, { method, url }, axiosConfig || {});
    const hasBody = ['POST', 'PUT', 'PATCH'].includes(String(method).toUpperCase());

    if (hasBody) {
      // path and query values of body methods travel in config.params
      const restful = buildRestfulUrl(url, cfg.params || {});
      cfg.url = restful.url;
      cfg.params = restful.params;
      if (payload !== undefined) cfg.data = payload;
      return doRequest<V>(cfg);
    }

    const restful = buildRestfulUrl(url, Object.assign({}, cfg.params || {}, payload || {}));
    cfg.url = restful.url;
    cfg.params = restful.params;
    return doRequest<V>(cfg);
  },
};
"""


templates = Templates()
