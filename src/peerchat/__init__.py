"""Runtime package for the peerchat node.

Módulos:
- ``config`` carrega parâmetros de arquivo JSON e valida limites.
- ``node`` orquestra listener, dialer, broadcaster e shutdown limpo.
- ``registry`` mantém o mapa thread-safe de conexões ativas.
- ``peer_connection`` contém as operações de socket (linhas, lock de escrita).
- ``peer_reader`` executa o loop de leitura de cada conexão.
- ``listener`` aceita conexões inbound; ``dialer`` abre as outbound.
- ``broadcaster`` envia mensagens para todos os peers.
- ``history`` e ``export`` guardam e gravam o histórico de mensagens.
- ``cli`` expõe a interface interativa de comandos.
"""
